"""Authority configuration loading and lookup."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Mapping

from horizon_scraper.common.constants import AUTHORITIES_FILENAME
from horizon_scraper.common.errors import ConfigurationError
from horizon_scraper.common.fs import read_yaml
from horizon_scraper.common.models import AuthorityConfig
from horizon_scraper.common.schema import validate_authorities_config


class AuthorityRegistry(Mapping[str, AuthorityConfig]):
    """Read-only mapping from authority key to its configuration.

    Built once at startup and passed explicitly to whatever needs it.
    """

    def __init__(self, authorities: Mapping[str, AuthorityConfig]) -> None:
        self._authorities = dict(authorities)

    def __getitem__(self, key: str) -> AuthorityConfig:
        return self._authorities[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._authorities)

    def __len__(self) -> int:
        return len(self._authorities)

    def get_config(self, key: str) -> AuthorityConfig:
        try:
            return self._authorities[key]
        except KeyError:
            raise ConfigurationError(f"Unexpected authority: {key}") from None

    def resolve(self, target: str) -> list[str]:
        if target == "all":
            return list(self._authorities)
        self.get_config(target)
        return [target]

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], *, allow_unknown: bool = False) -> "AuthorityRegistry":
        validated = validate_authorities_config(raw, allow_unknown=allow_unknown)
        known = AuthorityConfig.option_names()
        return cls(
            {
                key: AuthorityConfig(**{name: value for name, value in options.items() if name in known})
                for key, options in validated.items()
            }
        )


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> Any:
    if not path.exists():
        raise ConfigurationError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    return _deep_merge(base, overlay)


def load_authorities(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> AuthorityRegistry:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / AUTHORITIES_FILENAME
    raw = _load_yaml_with_overlay(config_dir / AUTHORITIES_FILENAME, overlay_path)
    return AuthorityRegistry.from_mapping(raw or {}, allow_unknown=allow_unknown)
