"""Draftsmith configuration.

Layers, later ones winning:
  defaults < ~/.draftsmith/config.yaml < ./draftsmith.yaml < DRAFTSMITH_* env vars

Command-line flags are applied by the CLI on top of the result. The global
file holds model defaults only; API-key-like keys in it are rejected. YAML is
always read with yaml.safe_load().
"""

from __future__ import annotations

import os
import re
import warnings
from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from draftsmith.db.models import ArtifactKind
from draftsmith.errors import ConfigError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".draftsmith"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "draftsmith.yaml"

# Matches api_key, api-key, api_secret, *_token, token, *_secret, secret,
# password, passwd, credential(s). Does NOT match max_tokens or timeout_seconds.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["generation", "stream", "autosave", "storage", "code", "heuristics"]
)

# Heuristic names accepted under heuristics.<kind>
HEURISTIC_CHOICES: frozenset[str] = frozenset(["csv", "none"])

# (env var, section, attribute)
_ENV_OVERRIDES: tuple[tuple[str, str, str], ...] = (
    ("DRAFTSMITH_GENERATION_MODEL", "generation", "model"),
    ("DRAFTSMITH_IMAGE_MODEL", "generation", "image_model"),
    ("DRAFTSMITH_DB", "storage", "db"),
)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class GenerationCfg:
    """LLM generation configuration (draftsmith.yaml: generation:)."""

    model: str = "openai/gpt-4o"
    image_model: str = "openai/dall-e-3"
    max_tokens: int = 4_096
    temperature: float = 0.0
    num_retries: int = 3


@dataclass
class StreamCfg:
    """Stream consumption limits (draftsmith.yaml: stream:).

    Attributes:
        timeout_seconds: Maximum wait between two stream events before the
            attempt is treated as a transport failure.
    """

    timeout_seconds: float = 60.0


@dataclass
class AutosaveCfg:
    """Manual-edit coalescing (draftsmith.yaml: autosave:)."""

    debounce_seconds: float = 2.0


@dataclass
class StorageCfg:
    """Persistence location (draftsmith.yaml: storage:)."""

    db: str = ".draftsmith.db"


@dataclass
class CodeCfg:
    """Code artifact defaults (draftsmith.yaml: code:)."""

    language: str = "python"


@dataclass
class DraftsmithConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    generation: GenerationCfg = field(default_factory=GenerationCfg)
    stream: StreamCfg = field(default_factory=StreamCfg)
    autosave: AutosaveCfg = field(default_factory=AutosaveCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)
    code: CodeCfg = field(default_factory=CodeCfg)
    # kind name → heuristic name; kinds not listed keep their built-in heuristic
    heuristics: dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _secret_like_keys(obj: Any, prefix: str = "") -> Iterator[tuple[str, str]]:
    """Yield ``(dotted_path, key)`` for every API-key-like key in *obj*."""
    if not isinstance(obj, dict):
        return
    for key, value in obj.items():
        dotted = f"{prefix}.{key}" if prefix else str(key)
        if _API_KEY_RE.search(str(key)):
            yield dotted, str(key)
        yield from _secret_like_keys(value, dotted)


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    found = next(_secret_like_keys(data), None)
    if found is not None:
        dotted, key = found
        raise ConfigError(
            f"Global config '{source}' contains a forbidden key '{dotted}'.\n"
            "  Keys and tokens belong in the environment, never in config files.\n"
            f"  Delete '{dotted}' from {source.name} and run:\n"
            f"    export {key.upper().replace('-', '_')}=<value>"
        )


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    for key in sorted(set(data) - _KNOWN_SECTIONS):
        warnings.warn(
            f"Ignoring unknown config section '{key}' in '{source}'.",
            UserWarning,
            stacklevel=4,
        )


def _validate(cfg: DraftsmithConfig) -> None:
    for kind, name in cfg.heuristics.items():
        if kind not in {k.value for k in ArtifactKind}:
            raise ConfigError(
                f"heuristics.{kind} is not an artifact kind; use one of {[k.value for k in ArtifactKind]}"
            )
        if name not in HEURISTIC_CHOICES:
            raise ConfigError(
                f"heuristics.{kind} must be one of {sorted(HEURISTIC_CHOICES)}, got '{name}'"
            )
    if cfg.stream.timeout_seconds <= 0:
        raise ConfigError(
            f"stream.timeout_seconds must be > 0, got {cfg.stream.timeout_seconds}"
        )
    if cfg.autosave.debounce_seconds < 0:
        raise ConfigError(
            f"autosave.debounce_seconds must be >= 0, got {cfg.autosave.debounce_seconds}"
        )


# ---------------------------------------------------------------------------
# Layer loading
# ---------------------------------------------------------------------------


def _read_layer(path: Path) -> dict[str, Any]:
    """Parse one YAML layer; a missing or empty file is an empty layer."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"'{path}' is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"'{path}' must contain a mapping of sections, got {type(data).__name__}")
    return data


def _merge_into(target: dict[str, Any], layer: dict[str, Any]) -> None:
    """Overlay *layer* onto *target* in place; nested mappings merge key by key."""
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged = dict(current)
            _merge_into(merged, value)
            target[key] = merged
        else:
            target[key] = value


def _section(cls: type, raw: Any) -> Any:
    """Build section dataclass *cls* from *raw*, coercing values to the default's type."""
    section = cls()
    for f in fields(cls):
        if isinstance(raw, dict) and f.name in raw:
            default = getattr(section, f.name)
            setattr(section, f.name, type(default)(raw[f.name]))
    return section


_SECTIONS: dict[str, type] = {
    "generation": GenerationCfg,
    "stream": StreamCfg,
    "autosave": AutosaveCfg,
    "storage": StorageCfg,
    "code": CodeCfg,
}


def _cfg_from_dict(data: dict[str, Any]) -> DraftsmithConfig:
    cfg = DraftsmithConfig()
    try:
        for name, cls in _SECTIONS.items():
            setattr(cfg, name, _section(cls, data.get(name)))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Bad value in config: {exc}") from exc
    cfg.heuristics = {str(k): str(v) for k, v in (data.get("heuristics") or {}).items()}
    return cfg


def _apply_env_overrides(cfg: DraftsmithConfig) -> None:
    for var, section, attr in _ENV_OVERRIDES:
        value = os.environ.get(var)
        if value:
            setattr(getattr(cfg, section), attr, value)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> DraftsmithConfig:
    """Return the merged configuration: defaults, global file, project file, env.

    Flags given on the command line are applied by the caller afterwards.

    Args:
        project_dir: Where to look for draftsmith.yaml (default: CWD).
        global_config_path: Global config location (tests point this elsewhere).

    Raises:
        ConfigError: If the global file holds API-key-like keys, a file is not
            a YAML mapping, a value has the wrong type, a heuristic name is
            unknown, or a limit is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    project_path = (project_dir if project_dir is not None else Path.cwd()) / _PROJECT_CONFIG_NAME

    merged: dict[str, Any] = {}
    for path, is_global in ((global_path, True), (project_path, False)):
        layer = _read_layer(path)
        if is_global:
            _check_no_api_keys(layer, path)
        _warn_unknown_keys(layer, path)
        _merge_into(merged, layer)

    cfg = _cfg_from_dict(merged)
    _validate(cfg)
    _apply_env_overrides(cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Write a starter ``~/.draftsmith/config.yaml`` unless one exists.

    The directory is created 0o700 and the file 0o600.

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        target.write_text(_STARTER_CONFIG, encoding="utf-8")
        target.chmod(0o600)

    return target


_STARTER_CONFIG = """\
# Draftsmith global configuration: model defaults only.
# API keys are read from the environment, e.g.
#   export OPENAI_API_KEY=sk-...
#   export ANTHROPIC_API_KEY=sk-ant-...

generation:
  model: openai/gpt-4o
  image_model: openai/dall-e-3

stream:
  timeout_seconds: 60
"""
