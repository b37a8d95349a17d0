"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from horizon_scraper.common.errors import ConfigurationError
from horizon_scraper.common.models import AuthorityConfig

_BOOL_OPTIONS = ("australian_proxy", "disable_ssl_certificate_check")
_STRING_OPTIONS = ("start_url", "state", "query_string", "query_name")


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigurationError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigurationError(f"Unknown keys in {ctx}: {unknown_str}")


def validate_authority_config(key: str, cfg: object, *, allow_unknown: bool = False) -> dict:
    ctx = f"authority {key}"
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"{ctx} must be a mapping")

    _assert_required_keys(cfg, {"start_url"}, ctx)
    _assert_no_unknown_keys(cfg, AuthorityConfig.option_names(), ctx, allow_unknown)

    for name in _STRING_OPTIONS:
        value = cfg.get(name)
        if value is not None and (not isinstance(value, str) or not value.strip()):
            raise ConfigurationError(f"{ctx}.{name} must be a non-empty string")

    for name in _BOOL_OPTIONS:
        if name in cfg and not isinstance(cfg[name], bool):
            raise ConfigurationError(f"{ctx}.{name} must be true or false")

    page_size = cfg.get("page_size")
    # bool is an int subclass; reject it explicitly.
    if page_size is not None and (isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0):
        raise ConfigurationError(f"{ctx}.page_size must be a positive integer")

    return cfg


def validate_authorities_config(cfg: object, *, allow_unknown: bool = False) -> dict:
    if not isinstance(cfg, dict) or not cfg:
        raise ConfigurationError("authorities config must be a non-empty mapping")
    return {
        str(key): validate_authority_config(str(key), value, allow_unknown=allow_unknown)
        for key, value in cfg.items()
    }
