from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from licensekit.core.canonicalization.base import Canonicalizer
from licensekit.core.canonicalization.registry import load_canonicalizer_config, new_canonicalizer_registry
from licensekit.core.registry import Registry

DEFAULT_KEY_SIZE = 2048

_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class LicenseKitConfig:
    """Process configuration, read from environment variables."""

    canonicalizers_path: Optional[str] = None
    encoding: str = "utf-8"
    log_level: str = "WARNING"
    rsa_padding: str = "pss"
    key_size: int = DEFAULT_KEY_SIZE

    @property
    def log_level_value(self) -> int:
        level = (self.log_level or "").upper()
        return getattr(logging, level) if level in _LEVELS else logging.WARNING


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    """Read an integer environment variable; unparsable values fall back to ``default``."""

    raw = env.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def _env_str(env: Mapping[str, str], name: str, default: Optional[str]) -> Optional[str]:
    raw = env.get(name, "").strip()
    return raw or default


def load_config(env: Optional[Mapping[str, str]] = None) -> LicenseKitConfig:
    """Build a LicenseKitConfig from ``env`` (defaults to os.environ)."""

    e = env if env is not None else os.environ
    level = (_env_str(e, "LICENSEKIT_LOG_LEVEL", "WARNING") or "WARNING").upper()
    return LicenseKitConfig(
        canonicalizers_path=_env_str(e, "LICENSEKIT_CANONICALIZERS", None),
        encoding=_env_str(e, "LICENSEKIT_ENCODING", "utf-8") or "utf-8",
        log_level=level if level in _LEVELS else "WARNING",
        rsa_padding=(_env_str(e, "LICENSEKIT_RSA_PADDING", "pss") or "pss").lower(),
        key_size=_env_int(e, "LICENSEKIT_KEY_SIZE", DEFAULT_KEY_SIZE),
    )


def build_canonicalizer_registry(config: Optional[LicenseKitConfig] = None) -> Registry[Canonicalizer]:
    """New registry with the built-ins plus the configured canonicalizer file, if any."""

    cfg = config if config is not None else load_config()
    registry = new_canonicalizer_registry()
    if cfg.canonicalizers_path:
        load_canonicalizer_config(cfg.canonicalizers_path, registry)
    return registry
