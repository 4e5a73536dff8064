from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .schema import BasketSwapConfig

ENV_PREFIX = "BASKETSWAP_"

_ENV_FIELDS: Mapping[str, tuple[str, ...]] = {
    "COALESCE_WINDOW_MS": ("coalesce_window_ms",),
    "DUST_THRESHOLD": ("dust_threshold",),
    "HTTP_TIMEOUT_SEC": ("http_timeout_sec",),
    "EXCLUDED_SOURCES": ("excluded_sources",),
    "ZEROEX_API_KEY": ("zeroex", "api_key"),
    "ZEROEX_RATE_PER_SEC": ("zeroex", "rate_per_sec"),
    "ZEROEX_RATE_PER_MIN": ("zeroex", "rate_per_min"),
    "PARASWAP_BASE_URL": ("paraswap", "base_url"),
    "PARASWAP_PARTNER": ("paraswap", "partner"),
}


def load_yaml(path: Path | str) -> dict[str, Any]:
    cfg_path = Path(path)
    with cfg_path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, dict):
        raise TypeError(f"Configuration root must be a mapping, got {type(payload)!r}")
    return payload


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for suffix, location in _ENV_FIELDS.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is None or raw.strip() == "":
            continue
        target = overrides
        for part in location[:-1]:
            target = target.setdefault(part, {})
        target[location[-1]] = raw.strip()
    return overrides


def _merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


def config_from_env(environ: Mapping[str, str] | None = None) -> BasketSwapConfig:
    """Build a config from ``BASKETSWAP_*`` variables only."""

    env = os.environ if environ is None else environ
    return BasketSwapConfig.model_validate(_env_overrides(env))


def load_config(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> BasketSwapConfig:
    """Load YAML configuration from ``path`` with environment overrides on top."""

    env = os.environ if environ is None else environ
    raw: dict[str, Any] = load_yaml(path) if path is not None else {}
    return BasketSwapConfig.model_validate(_merge(raw, _env_overrides(env)))


def validate_payload(payload: Any) -> list[str]:
    """Return a list of validation errors for ``payload``.

    The function returns an empty list when the payload is valid.
    """

    errors: list[str] = []
    try:
        BasketSwapConfig.model_validate(payload)
    except ValidationError as exc:
        for entry in exc.errors():
            location = ".".join(str(part) for part in entry.get("loc", ()))
            message = str(entry.get("msg") or "invalid")
            if location:
                errors.append(f"{location}: {message}")
            else:
                errors.append(message)
    return errors


__all__ = ["ENV_PREFIX", "config_from_env", "load_config", "load_yaml", "validate_payload"]
