"""Configuration loading and path resolution."""

from __future__ import annotations

from pathlib import Path

import yaml

from reelsmith.models import ClipPolicy, LanguageConfig

_DEFAULT_CONFIG = "config.yaml"
_PLACEHOLDER_PREFIX = "YOUR_"


class ConfigError(ValueError):
    """Raised when config.yaml is missing a setting or holds an invalid one."""


def load_config(config_path: str | None = None) -> dict:
    """Load the YAML configuration file.

    Args:
        config_path: Path to config.yaml. Defaults to ./config.yaml.

    Returns:
        Parsed config dict.

    Raises:
        FileNotFoundError: If config file doesn't exist.
    """
    path = Path(config_path or _DEFAULT_CONFIG)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_project_root(config_path: str | None = None) -> Path:
    """Return the project root (directory containing config.yaml)."""
    path = Path(config_path or _DEFAULT_CONFIG)
    return path.resolve().parent


def resolve_path(config: dict, key_path: str, config_path: str | None = None) -> Path:
    """Resolve a path from config relative to project root.

    Args:
        config: Parsed config dict.
        key_path: Dot-separated path into config (e.g. 'paths.upload_dir').
        config_path: Path to config.yaml for resolving project root.

    Returns:
        Resolved absolute Path.
    """
    root = get_project_root(config_path)
    val = config
    for k in key_path.split("."):
        val = val[k]
    p = Path(val)
    if not p.is_absolute():
        p = root / p
    return p


def get_upload_dir(config: dict, config_path: str | None = None) -> Path:
    """Directory holding downloaded clips and rendered videos."""
    return resolve_path(config, "paths.upload_dir", config_path)


def get_data_dir(config: dict, config_path: str | None = None) -> Path:
    """Directory holding project records."""
    return resolve_path(config, "paths.data_dir", config_path)


def get_api_key(config: dict, service: str) -> str:
    """Return ``<service>.api_key`` from config.

    Raises:
        ConfigError: If the key is missing or still a placeholder.
    """
    api_key: str = (config.get(service) or {}).get("api_key", "")
    if not api_key or api_key.startswith(_PLACEHOLDER_PREFIX):
        raise ConfigError(
            f"API key not configured. Set '{service}.api_key' in config.yaml."
        )
    return api_key


def get_clip_policy(config: dict) -> ClipPolicy:
    """Missing-clip policy for renders ('strict' or 'best-effort')."""
    value = (config.get("render") or {}).get("missing_clips", ClipPolicy.STRICT.value)
    try:
        return ClipPolicy(value)
    except ValueError as exc:
        raise ConfigError(
            f"render.missing_clips must be one of "
            f"{', '.join(p.value for p in ClipPolicy)}; got {value!r}"
        ) from exc


def get_ffmpeg_bins(config: dict) -> tuple[str, str]:
    """(ffmpeg, ffprobe) executables, overridable under ``render``."""
    render = config.get("render") or {}
    return render.get("ffmpeg_bin", "ffmpeg"), render.get("ffprobe_bin", "ffprobe")


def get_languages(config: dict) -> list[LanguageConfig]:
    """Parse language configs from config."""
    return [
        LanguageConfig(
            code=lang["code"],
            name=lang.get("name", lang["code"]),
            idea_model=lang.get("idea_model", ""),
            idea_system_prompt=lang.get("idea_system_prompt", ""),
            script_model=lang.get("script_model", ""),
            script_system_prompt=lang.get("script_system_prompt", ""),
            visual_model=lang.get("visual_model", ""),
            visual_system_prompt=lang.get("visual_system_prompt", ""),
        )
        for lang in config.get("languages", [])
    ]


def get_language(config: dict, code: str) -> LanguageConfig:
    """Look up one language config by code.

    Raises:
        ConfigError: If no language with that code is configured.
    """
    for lang in get_languages(config):
        if lang.code == code:
            return lang
    raise ConfigError(f"Language config not found: {code}")
