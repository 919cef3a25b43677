import json
import logging
from pathlib import Path

from licensekit.config import DEFAULT_KEY_SIZE, LicenseKitConfig, build_canonicalizer_registry, load_config
from licensekit.core.canonicalization import InpCanonicalizer, canonicalizer_for_path


def test_defaults_from_empty_environment() -> None:
    cfg = load_config({})

    assert cfg.canonicalizers_path is None
    assert cfg.encoding == "utf-8"
    assert cfg.log_level == "WARNING"
    assert cfg.log_level_value == logging.WARNING
    assert cfg.rsa_padding == "pss"
    assert cfg.key_size == DEFAULT_KEY_SIZE


def test_values_from_environment() -> None:
    cfg = load_config(
        {
            "LICENSEKIT_CANONICALIZERS": "/etc/licensekit/canon.json",
            "LICENSEKIT_ENCODING": "utf-16",
            "LICENSEKIT_LOG_LEVEL": "debug",
            "LICENSEKIT_RSA_PADDING": "PKCS1",
            "LICENSEKIT_KEY_SIZE": "4096",
        }
    )

    assert cfg.canonicalizers_path == "/etc/licensekit/canon.json"
    assert cfg.encoding == "utf-16"
    assert cfg.log_level_value == logging.DEBUG
    assert cfg.rsa_padding == "pkcs1"
    assert cfg.key_size == 4096


def test_bad_values_fall_back() -> None:
    cfg = load_config({"LICENSEKIT_LOG_LEVEL": "chatty", "LICENSEKIT_KEY_SIZE": "big", "LICENSEKIT_ENCODING": " "})

    assert cfg.log_level == "WARNING"
    assert cfg.key_size == DEFAULT_KEY_SIZE
    assert cfg.encoding == "utf-8"


def test_registry_includes_configured_canonicalizers(tmp_path: Path) -> None:
    path = tmp_path / "canon.json"
    path.write_text(json.dumps({".net": "epanet"}), encoding="utf-8")

    registry = build_canonicalizer_registry(load_config({"LICENSEKIT_CANONICALIZERS": str(path)}))
    assert isinstance(canonicalizer_for_path("city.net", registry), InpCanonicalizer)
    assert canonicalizer_for_path("city.inp", registry) is not None

    plain = build_canonicalizer_registry(load_config({}))
    assert canonicalizer_for_path("city.net", plain) is None


def test_log_level_value_only_maps_known_levels() -> None:
    assert LicenseKitConfig(log_level="info").log_level_value == logging.INFO
    assert LicenseKitConfig(log_level="BASIC_FORMAT").log_level_value == logging.WARNING
