"""
secrets_manager
================

Secret lookup for exchange credentials.  A value is read from the
environment variable ``NAME`` or, when ``NAME_FILE`` is set, from the file
it points to.  Mounting keys as files (Docker or Kubernetes secrets) keeps
them out of the process environment; the file always takes precedence.

Deployments historically filled unused account slots with the literal
string ``null``; such values are treated as unset.

Example usage::

    from gateway.secrets_manager import get_default_secrets_manager

    secrets = get_default_secrets_manager()
    api_key = secrets.get_secret("BYBIT_API_KEY_1")
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

_UNSET_MARKERS = {"", "null", "none"}


class BaseSecretsManager:
    """Abstract base class for secrets managers."""

    def get_secret(self, name: str) -> Optional[str]:  # pragma: no cover - override
        """Return the secret value for ``name`` or ``None`` if unavailable."""
        raise NotImplementedError


class EnvFileSecretsManager(BaseSecretsManager):
    """Read secrets from an environment mapping and optional ``*_FILE`` paths."""

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        base_path: Optional[Path] = None,
    ) -> None:
        self.environ = os.environ if environ is None else environ
        #: Optional base directory to resolve relative file paths.
        self.base_path = base_path
        self._cache: Dict[str, Optional[str]] = {}

    def get_secret(self, name: str) -> Optional[str]:
        if name in self._cache:
            return self._cache[name]
        file_path = self.environ.get(f"{name}_FILE")
        if file_path:
            value = self._read_file(name, file_path)
        else:
            value = self.environ.get(name)
        if value is not None:
            value = value.strip()
            if value.lower() in _UNSET_MARKERS:
                value = None
        self._cache[name] = value
        return value

    def _read_file(self, name: str, file_path: str) -> Optional[str]:
        path = Path(file_path)
        if not path.is_absolute() and self.base_path is not None:
            path = self.base_path / path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            # The path is safe to log; the contents are not
            logger.warning("Could not read %s_FILE at %s: %s", name, path, exc)
            return None


def get_default_secrets_manager(environ: Optional[Mapping[str, str]] = None) -> BaseSecretsManager:
    """Return the environment/file backed manager.

    Relative ``*_FILE`` paths resolve against ``SECRETS_BASE_PATH`` when set.
    """
    env = os.environ if environ is None else environ
    base = env.get("SECRETS_BASE_PATH")
    return EnvFileSecretsManager(environ=env, base_path=Path(base) if base else None)


__all__ = [
    "BaseSecretsManager",
    "EnvFileSecretsManager",
    "get_default_secrets_manager",
]
