from oidc_cli.ui.console import ConsoleUI
from oidc_cli.ui.display import format_tokens, format_tokens_json
from oidc_cli.ui.manual_entry import extract_authorization_code, prompt_for_authorization_code
from oidc_cli.ui.types import UserInterface

__all__ = [
    "ConsoleUI",
    "UserInterface",
    "extract_authorization_code",
    "format_tokens",
    "format_tokens_json",
    "prompt_for_authorization_code",
]
