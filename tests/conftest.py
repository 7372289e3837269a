import pytest

from oidc_cli.settings import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    # Keep profile files and settings per-test
    monkeypatch.setenv("OIDC_CLI_PROFILES__CONFIG_DIR", str(tmp_path / "config"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class RecordingUI:
    """UserInterface double that records output and replays scripted answers."""

    def __init__(self, answers=()):
        self.answers = list(answers)
        self.prompts = []
        self.messages = []

    def prompt(self, message):
        self.prompts.append(message)
        return self.answers.pop(0)

    def display(self, message):
        self.messages.append(message)

    def select(self, message, choices):
        self.prompts.append(message)
        answer = self.answers.pop(0)
        assert answer in choices
        return answer


@pytest.fixture
def ui():
    return RecordingUI()
