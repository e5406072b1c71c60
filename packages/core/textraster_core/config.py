"""Persistent settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


CONFIG_VERSION = 2


@dataclass
class RenderConfig:
    max_width: int = 4096
    max_height: int = 4096
    dpi: int = 96
    default_font: str = "DejaVuSans"
    monospace_font: str = "DejaVuSansMono"
    default_font_size: float = 16.0


@dataclass
class CacheConfig:
    dictionary_path: str | None = None
    autosave: bool = True


@dataclass
class LoggingConfig:
    keep_log_files: int = 7
    level: str = "INFO"
    console: bool = False


@dataclass
class PerformanceConfig:
    render_ms_max: float = 50.0
    rss_mb_max: float = 300.0


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    render: RenderConfig = field(default_factory=RenderConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)


DEFAULT_CONFIG = AppConfig()


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "TextRaster"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "TextRaster"
    return Path.home() / ".config" / "textraster"


def config_path() -> Path:
    return config_root() / "config.json"


def default_dictionary_path(cfg: AppConfig) -> Path:
    if cfg.cache.dictionary_path:
        return Path(cfg.cache.dictionary_path).expanduser()
    return config_root() / "dictionary.npz"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_render(cfg: AppConfig) -> None:
    cfg.render.max_width = max(16, min(65535, int(cfg.render.max_width)))
    cfg.render.max_height = max(16, min(65535, int(cfg.render.max_height)))
    cfg.render.dpi = max(36, min(1200, int(cfg.render.dpi)))
    cfg.render.default_font_size = float(max(1.0, cfg.render.default_font_size))


def _normalize_logging(cfg: AppConfig) -> None:
    cfg.logging.keep_log_files = max(2, int(cfg.logging.keep_log_files))
    level = str(cfg.logging.level).upper()
    cfg.logging.level = level if level in ("DEBUG", "INFO", "WARNING", "ERROR") else "INFO"


def _normalize_performance(cfg: AppConfig) -> None:
    cfg.performance.render_ms_max = float(max(1.0, cfg.performance.render_ms_max))
    cfg.performance.rss_mb_max = float(max(64.0, cfg.performance.rss_mb_max))


def _migrate(raw: dict[str, Any]) -> dict[str, Any]:
    version = int(raw.get("config_version", 1))
    data = dict(raw)

    if version < 2:
        # v1 kept the canvas limit and dictionary file as top-level keys.
        render = dict(data.get("render", {}) or {})
        if "max_canvas" in data:
            width, height = data.pop("max_canvas")
            render.setdefault("max_width", width)
            render.setdefault("max_height", height)
        data["render"] = render
        cache = dict(data.get("cache", {}) or {})
        if "dictionary" in data:
            cache.setdefault("dictionary_path", data.pop("dictionary"))
        data["cache"] = cache
        data.setdefault("logging", {})
        data.setdefault("performance", {})
        data["config_version"] = 2

    return data


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return AppConfig()

    data = _migrate(raw)
    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        render=_merge(RenderConfig, data.get("render", {})),
        cache=_merge(CacheConfig, data.get("cache", {})),
        logging=_merge(LoggingConfig, data.get("logging", {})),
        performance=_merge(PerformanceConfig, data.get("performance", {})),
    )

    _normalize_render(cfg)
    _normalize_logging(cfg)
    _normalize_performance(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
