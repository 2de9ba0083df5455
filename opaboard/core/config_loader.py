import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfoNotFoundError

import yaml

from opaboard.core.dates import resolve_tz
from opaboard.core.models import (
    DEFAULT_PLACEHOLDER_DEPARTMENTS,
    DEFAULT_PLACEHOLDER_NAMES,
    DEFAULT_VOCABULARY,
    EngineOptions,
)

STATUS_GROUPS = ("finished", "in_service", "bot", "waiting")


def _expand_path(value: str) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(value))).resolve()


def _base_dir_from_config_path(config_path: Path) -> Path:
    """
    Determine the "project base dir" used to resolve relative paths.

    - If config is .../config/config.yaml, treat base as the parent of config/
    - Otherwise treat base as the directory containing the config file
    """
    config_dir = config_path.parent
    if config_dir.name.lower() == "config":
        return config_dir.parent
    return config_dir


def discover_config_path(explicit: Optional[str] = None) -> Path:
    candidates: List[Path] = []

    if explicit and str(explicit).strip():
        candidates.append(_expand_path(str(explicit).strip()))

    env_cfg = os.environ.get("OPABOARD_CONFIG", "").strip()
    if env_cfg:
        candidates.append(_expand_path(env_cfg))

    home = os.environ.get("OPABOARD_HOME", "").strip()
    if home:
        candidates.append(_expand_path(home) / "config" / "config.yaml")

    candidates.append(Path.cwd() / "config" / "config.yaml")

    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        candidates.append(_expand_path(xdg) / "opaboard" / "config.yaml")
    candidates.append(Path.home() / ".config" / "opaboard" / "config.yaml")

    for path in candidates:
        try:
            if path.exists() and path.is_file():
                return path
        except OSError:
            continue

    tried = "\n".join([f"  - {p}" for p in candidates])
    raise FileNotFoundError(
        "opaboard config not found. Provide `--config`, set $OPABOARD_CONFIG, or create one of:\n"
        f"{tried}\n\n"
        "Tip: copy `config/config.example.yaml` to `config/config.yaml`."
    )


def load_config(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return data


def _resolve_path(base_dir: Path, maybe_path: Any) -> Any:
    if not isinstance(maybe_path, str):
        return maybe_path
    s = maybe_path.strip()
    if not s:
        return maybe_path
    p = Path(os.path.expandvars(os.path.expanduser(s)))
    if p.is_absolute():
        return str(p)
    return str((base_dir / p).resolve())


def normalize_config(config: Dict[str, Any], *, config_path: Path) -> Tuple[Dict[str, Any], Path]:
    """
    Normalize config for portability:
    - Resolve logging.log_dir relative to a stable base dir (not the caller's CWD)
    - Fill the upstream/polling sections with their defaults
    """
    home_override = os.environ.get("OPABOARD_HOME", "").strip()
    base_dir = _expand_path(home_override) if home_override else _base_dir_from_config_path(config_path)

    cfg: Dict[str, Any] = dict(config or {})

    cfg.setdefault("__opaboard", {})
    if isinstance(cfg["__opaboard"], dict):
        cfg["__opaboard"]["config_path"] = str(config_path)
        cfg["__opaboard"]["base_dir"] = str(base_dir)

    logging_cfg = dict(cfg.get("logging", {}) or {})
    log_dir = os.environ.get("OPABOARD_LOG_DIR", "").strip() or logging_cfg.get("log_dir", "logs")
    logging_cfg["log_dir"] = _resolve_path(base_dir, log_dir)
    cfg["logging"] = logging_cfg

    upstream_cfg = dict(cfg.get("upstream", {}) or {})
    upstream_cfg.setdefault("base_url", "")
    upstream_cfg.setdefault("token_env", "OPABOARD_API_TOKEN")
    upstream_cfg.setdefault("timeout_seconds", 30)
    upstream_cfg.setdefault("verify_ssl", True)
    upstream_cfg.setdefault("settings_source", "config")
    cfg["upstream"] = upstream_cfg

    polling_cfg = dict(cfg.get("polling", {}) or {})
    polling_cfg.setdefault("poll_interval_seconds", 30)
    cfg["polling"] = polling_cfg

    cfg["engine"] = dict(cfg.get("engine", {}) or {})

    return cfg, base_dir


def _string_list(section: str, value: Any, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{section} must be a list, got {type(value).__name__}")
    return tuple(str(v) for v in value)


def engine_options_from_config(config: Dict[str, Any]) -> EngineOptions:
    """
    Build EngineOptions from the `engine:` section; missing keys keep defaults.
    """
    engine_cfg = (config or {}).get("engine", {}) or {}
    if not isinstance(engine_cfg, dict):
        raise ValueError("engine must be a YAML mapping")

    tz_name = str(engine_cfg.get("timezone") or "UTC").strip()
    try:
        resolve_tz(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"engine.timezone: unknown timezone {tz_name!r}") from e

    max_duration = engine_cfg.get("max_duration_seconds")
    if max_duration is not None:
        max_duration = int(max_duration)
        if max_duration <= 0:
            raise ValueError("engine.max_duration_seconds must be positive when set")

    extra_codes = engine_cfg.get("extra_status_codes") or {}
    if not isinstance(extra_codes, dict):
        raise ValueError("engine.extra_status_codes must be a mapping of group -> list")
    for group, codes in extra_codes.items():
        if group not in STATUS_GROUPS:
            raise ValueError(
                f"engine.extra_status_codes: unknown group {group!r} (expected one of {', '.join(STATUS_GROUPS)})"
            )
        if not isinstance(codes, (list, tuple)):
            raise ValueError(f"engine.extra_status_codes.{group} must be a list")

    return EngineOptions(
        default_department=str(engine_cfg.get("default_department") or "Suporte"),
        placeholder_departments=_string_list(
            "engine.placeholder_departments",
            engine_cfg.get("placeholder_departments"),
            DEFAULT_PLACEHOLDER_DEPARTMENTS,
        ),
        placeholder_names=_string_list(
            "engine.placeholder_names",
            engine_cfg.get("placeholder_names"),
            DEFAULT_PLACEHOLDER_NAMES,
        ),
        max_duration_seconds=max_duration,
        synthesize_missing_attendants=bool(engine_cfg.get("synthesize_missing_attendants", False)),
        protocol_as_last_resort=bool(engine_cfg.get("protocol_as_last_resort", False)),
        timezone=tz_name,
        vocabulary=DEFAULT_VOCABULARY.extended(extra_codes),
    )


def load_app_config(explicit_path: Optional[str] = None) -> Tuple[Dict[str, Any], Path, Path]:
    """
    Returns: (config_dict, config_path, base_dir)
    """
    config_path = discover_config_path(explicit_path)
    cfg = load_config(config_path)
    cfg, base_dir = normalize_config(cfg, config_path=config_path)
    return cfg, config_path, base_dir
