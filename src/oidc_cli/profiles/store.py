"""JSON file backed profile store.

All profiles live in a single ``profiles.json`` under the configured config
directory. Writes go through a temporary file and ``os.replace`` with
``0o600`` permissions since profiles may carry client secrets.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from oidc_cli.errors import ProfileError, ProfileExists, ProfileNotFound
from oidc_cli.files import write_private_text
from oidc_cli.profiles.models import Profile, ProfileConfig
from oidc_cli.profiles.validation import validate_profile
from oidc_cli.settings import get_settings

logger = logging.getLogger(__name__)


def _read_config(path: Path) -> ProfileConfig:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ProfileError(f"Failed to read profiles from {path}: {exc}") from exc
    except ValueError as exc:
        raise ProfileError(f"Invalid profile file {path}: {exc}") from exc
    try:
        return ProfileConfig.model_validate(raw)
    except ValidationError as exc:
        raise ProfileError(f"Invalid profile file {path}: {exc}") from exc


def _write_config(path: Path, config: ProfileConfig) -> None:
    text = json.dumps(config.model_dump(mode="json", exclude_none=True), indent=2) + "\n"
    write_private_text(path, text)


class ProfileStore:
    """Named profiles persisted as one JSON document."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path or get_settings().profiles.path()
        self._config = _read_config(self._path) if self._path.exists() else ProfileConfig()

    @property
    def path(self) -> Path:
        return self._path

    def list(self) -> List[str]:
        return sorted(self._config.profiles)

    def get(self, name: str) -> Profile:
        try:
            return self._config.profiles[name]
        except KeyError:
            raise ProfileNotFound(name) from None

    def single(self) -> Optional[str]:
        """Name of the only stored profile, if exactly one exists."""
        names = self.list()
        return names[0] if len(names) == 1 else None

    def add(self, name: str, profile: Profile, *, overwrite: bool = False) -> None:
        name = name.strip()
        if not name:
            raise ProfileError("Profile name cannot be empty")
        if name in self._config.profiles and not overwrite:
            raise ProfileExists(name)
        validate_profile(profile)
        self._config.profiles[name] = profile
        self.save()

    def update(self, name: str, profile: Profile) -> None:
        self.get(name)
        validate_profile(profile)
        self._config.profiles[name] = profile
        self.save()

    def remove(self, name: str) -> Profile:
        profile = self.get(name)
        del self._config.profiles[name]
        self.save()
        return profile

    def rename(self, old_name: str, new_name: str) -> None:
        new_name = new_name.strip()
        if not new_name:
            raise ProfileError("New profile name cannot be empty")
        if new_name in self._config.profiles:
            raise ProfileExists(new_name)
        profile = self.get(old_name)
        del self._config.profiles[old_name]
        self._config.profiles[new_name] = profile
        self.save()

    def export(self, path: Path, names: Optional[Iterable[str]] = None) -> List[str]:
        selected = list(names) if names else self.list()
        exported = ProfileConfig(profiles={name: self.get(name) for name in selected})
        _write_config(path, exported)
        return selected

    def import_(self, path: Path, *, overwrite: bool = False) -> List[str]:
        incoming = _read_config(path)
        if not overwrite:
            for name in incoming.profiles:
                if name in self._config.profiles:
                    raise ProfileExists(name)
        for profile in incoming.profiles.values():
            validate_profile(profile)
        self._config.profiles.update(incoming.profiles)
        self.save()
        logger.info("imported profiles", extra={"count": len(incoming.profiles), "path": str(path)})
        return sorted(incoming.profiles)

    def save(self) -> None:
        _write_config(self._path, self._config)
