"""
Application configuration.

Every setting is resolved with the same precedence: explicit argument >
environment variable > default.

- ``RESOURCEMACHINE_APPLICATION_PATH``: ``application_path`` (default ``""``)
- ``RESOURCEMACHINE_STRICT_INTERFACES``: ``strict_interfaces`` (default false;
  accepts true/1/yes/on and false/0/no/off)
- ``RESOURCEMACHINE_DEFAULT_PRODUCES``: ``default_produces`` (default
  ``application/json``)
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .descriptors import MediaType
from .paths import trim

logger = logging.getLogger(__name__)

ENV_APPLICATION_PATH = "RESOURCEMACHINE_APPLICATION_PATH"
ENV_STRICT_INTERFACES = "RESOURCEMACHINE_STRICT_INTERFACES"
ENV_DEFAULT_PRODUCES = "RESOURCEMACHINE_DEFAULT_PRODUCES"

DEFAULT_PRODUCES = "application/json"

_TRUE_VALUES = ('true', '1', 'yes', 'on')
_FALSE_VALUES = ('false', '0', 'no', 'off')


def _env_bool(environ: Mapping[str, str], name: str) -> Optional[bool]:
    env_value = environ.get(name, '').strip().lower()
    if env_value in _TRUE_VALUES:
        return True
    elif env_value in _FALSE_VALUES:
        return False
    if env_value:
        logger.warning(f"Ignoring invalid boolean value for {name}: {environ[name]!r}")
    return None


@dataclass(frozen=True)
class ApplicationConfig:
    """Resolved application settings."""

    application_path: str = ""
    strict_interfaces: bool = False
    default_produces: str = DEFAULT_PRODUCES

    def __post_init__(self):
        object.__setattr__(self, "application_path", trim(self.application_path))
        # Fail fast on a malformed media type
        MediaType.parse(self.default_produces)

    @property
    def default_media_type(self) -> MediaType:
        return MediaType.parse(self.default_produces)

    @classmethod
    def load(cls,
             application_path: Optional[str] = None,
             strict_interfaces: Optional[bool] = None,
             default_produces: Optional[str] = None,
             environ: Optional[Mapping[str, str]] = None) -> "ApplicationConfig":
        """Resolve settings from arguments, then the environment, then defaults."""
        if environ is None:
            environ = os.environ

        if application_path is None:
            application_path = environ.get(ENV_APPLICATION_PATH, "")

        if strict_interfaces is None:
            strict_interfaces = _env_bool(environ, ENV_STRICT_INTERFACES)
            if strict_interfaces is None:
                strict_interfaces = False

        if default_produces is None:
            default_produces = environ.get(ENV_DEFAULT_PRODUCES) or DEFAULT_PRODUCES

        return cls(
            application_path=application_path,
            strict_interfaces=strict_interfaces,
            default_produces=default_produces,
        )
