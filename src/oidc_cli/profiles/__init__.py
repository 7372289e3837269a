from oidc_cli.profiles.models import Profile, ProfileConfig
from oidc_cli.profiles.store import ProfileStore
from oidc_cli.profiles.validation import validate_profile

__all__ = ["Profile", "ProfileConfig", "ProfileStore", "validate_profile"]
