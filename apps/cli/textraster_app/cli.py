"""CLI entrypoints for rendering text images and managing glyph dictionaries."""

from __future__ import annotations

import argparse
import json
import math
from dataclasses import asdict
from pathlib import Path
from typing import Any

from PIL import Image

from textraster_core import (
    AppConfig,
    PerformanceController,
    PerformanceTargets,
    default_dictionary_path,
    load_config,
)
from textraster_core.config import config_path
from textraster_core.logging_setup import configure_logging, get_logger
from textraster_renderer import (
    DEFAULT_TEXT,
    FormattingConfig,
    QuickRenderer,
    TextRasterError,
    TextRenderer,
    load_dictionary,
)


logger = get_logger("cli")


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _parse_value(raw: str) -> Any:
    if raw.strip().lower() == "nan":
        return math.nan
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _parse_props(pairs: list[str] | None, pad: list[str] | None = None) -> FormattingConfig | None:
    props: list[tuple[str, Any]] = []
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"Property must be KEY=VALUE, got {pair!r}")
        props.append((key.strip(), _parse_value(value)))
    if pad:
        props.append(("padding", [_parse_value(v) for v in pad]))
    if not props:
        return None
    return FormattingConfig.from_pairs(props)


def _load_cfg(args: argparse.Namespace) -> AppConfig:
    return load_config(Path(args.config) if getattr(args, "config", None) else None)


def build_renderer(cfg: AppConfig) -> TextRenderer:
    return TextRenderer(
        max_width=cfg.render.max_width,
        max_height=cfg.render.max_height,
        dpi=cfg.render.dpi,
        default_font=cfg.render.default_font,
        monospace_font=cfg.render.monospace_font,
        default_font_size=cfg.render.default_font_size,
    )


def _dictionary_path(args: argparse.Namespace, cfg: AppConfig) -> Path:
    if getattr(args, "dictionary", None):
        return Path(args.dictionary).expanduser()
    return default_dictionary_path(cfg)


def _open_quick(args: argparse.Namespace, cfg: AppConfig) -> tuple[QuickRenderer, Path]:
    path = _dictionary_path(args, cfg)
    entries = load_dictionary(path) if path.exists() else None
    return QuickRenderer(build_renderer(cfg), entries=entries), path


def _save_images(image, alpha, out: str | None, alpha_out: str | None) -> dict[str, str]:
    written: dict[str, str] = {}
    if out:
        image.save(out)
        written["out"] = out
    if alpha_out:
        alpha.save(alpha_out)
        written["alpha_out"] = alpha_out
    return written


def cmd_render(args: argparse.Namespace) -> int:
    cfg = _load_cfg(args)
    lines = args.text or [DEFAULT_TEXT]
    props = _parse_props(args.prop)
    pad = [_parse_value(v) for v in args.pad] if args.pad else None

    result = build_renderer(cfg).render(lines, props, padding=pad)
    written = _save_images(Image.fromarray(result.image), Image.fromarray(result.alpha), args.out, args.alpha_out)
    _print_json({"success": True, "height": result.height, "width": result.width, "cropped": result.cropped, **written})
    return 0


def cmd_quick(args: argparse.Namespace) -> int:
    cfg = _load_cfg(args)
    quick, path = _open_quick(args, cfg)
    before = len(quick.entries)

    text = "\n".join(args.text) if args.text else DEFAULT_TEXT
    composed = quick.render(text, _parse_props(args.prop, args.pad))
    written = {}
    if composed.height and composed.width:
        written = _save_images(composed.to_pil(), composed.alpha_pil(), args.out, args.alpha_out)

    added = len(quick.entries) - before
    if added and cfg.cache.autosave and not args.no_save:
        quick.save(path)
        logger.info("saved %d new dictionary entries to %s", added, path, extra={"event": "dictionary_saved"})

    _print_json(
        {
            "success": True,
            "height": composed.height,
            "width": composed.width,
            "entries": len(quick.entries),
            "rendered": quick.cache.render_calls,
            "dictionary": str(path),
            **written,
        }
    )
    return 0


def cmd_warm(args: argparse.Namespace) -> int:
    cfg = _load_cfg(args)
    quick, path = _open_quick(args, cfg)
    fragments: list[str] = list(args.chars or "") + list(args.fragment or [])
    indices = quick.warm(fragments, _parse_props(args.prop, args.pad))
    quick.save(path)
    _print_json(
        {
            "success": True,
            "indices": indices,
            "rendered": quick.cache.render_calls,
            "entries": len(quick.entries),
            "dictionary": str(path),
        }
    )
    return 0


def cmd_dictionary_show(args: argparse.Namespace) -> int:
    cfg = _load_cfg(args)
    path = _dictionary_path(args, cfg)
    entries = load_dictionary(path) if path.exists() else []
    _print_json(
        {
            "dictionary": str(path),
            "entries": [
                {
                    "index": i,
                    "fragment": e.fragment,
                    "height": e.height,
                    "width": e.width,
                    "config": e.config.to_dict(),
                }
                for i, e in enumerate(entries)
            ],
        }
    )
    return 0


def cmd_dictionary_clear(args: argparse.Namespace) -> int:
    cfg = _load_cfg(args)
    path = _dictionary_path(args, cfg)
    existed = path.exists()
    if existed:
        path.unlink()
    _print_json({"success": True, "dictionary": str(path), "removed": existed})
    return 0


def cmd_benchmark(args: argparse.Namespace) -> int:
    cfg = _load_cfg(args)
    props = _parse_props(args.prop)
    targets = PerformanceTargets(render_ms_max=cfg.performance.render_ms_max, rss_mb_max=cfg.performance.rss_mb_max)
    renderer = build_renderer(cfg)

    direct = PerformanceController(targets)
    for _ in range(args.iterations):
        direct.measure(renderer.render, args.text, props)

    quick = QuickRenderer(renderer, config=props)
    cached = PerformanceController(targets)
    for _ in range(args.iterations):
        cached.measure(quick.render, args.text)

    direct_status = direct.sample()
    cached_status = cached.sample()
    speedup = direct_status.mean_render_ms / cached_status.mean_render_ms if cached_status.mean_render_ms else None
    _print_json(
        {
            "text": args.text,
            "iterations": args.iterations,
            "direct": asdict(direct_status),
            "cached": asdict(cached_status),
            "speedup": speedup,
            "glyphs_rendered": quick.cache.render_calls,
        }
    )
    return 0


def cmd_config_show(args: argparse.Namespace) -> int:
    cfg = _load_cfg(args)
    _print_json({"path": str(Path(args.config) if args.config else config_path()), "config": asdict(cfg)})
    return 0


def _add_props(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--prop", action="append", metavar="KEY=VALUE", help="Text property, e.g. color=red")
    cmd.add_argument("--pad", nargs="+", metavar="PX", help="Margin: N, H V or L R T B pixels; nan crops that side")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="textraster", description="Render text strings into images")
    parser.add_argument("--config", default=None, help="Optional settings file path")
    sub = parser.add_subparsers(dest="command", required=True)

    render_cmd = sub.add_parser("render", help="Render text without the dictionary")
    render_cmd.add_argument("text", nargs="*", help="Text lines (default: Abc)")
    _add_props(render_cmd)
    render_cmd.add_argument("--out", default="text.png", help="RGB image output path")
    render_cmd.add_argument("--alpha-out", default=None, help="Optional alpha mask output path")
    render_cmd.set_defaults(func=cmd_render)

    quick_cmd = sub.add_parser("quick", help="Render text through the glyph dictionary")
    quick_cmd.add_argument("text", nargs="*", help="Text rows (default: Abc)")
    _add_props(quick_cmd)
    quick_cmd.add_argument("--dictionary", default=None, help="Dictionary file (.npz)")
    quick_cmd.add_argument("--out", default="text.png", help="RGB image output path")
    quick_cmd.add_argument("--alpha-out", default=None, help="Optional alpha mask output path")
    quick_cmd.add_argument("--no-save", action="store_true", help="Do not write new entries back to the dictionary")
    quick_cmd.set_defaults(func=cmd_quick)

    warm_cmd = sub.add_parser("warm", help="Add characters or fragments to the dictionary")
    warm_cmd.add_argument("chars", nargs="?", default="", help="Characters to cache one by one")
    warm_cmd.add_argument("--fragment", action="append", help="Multi-character fragment to cache")
    _add_props(warm_cmd)
    warm_cmd.add_argument("--dictionary", default=None, help="Dictionary file (.npz)")
    warm_cmd.set_defaults(func=cmd_warm)

    dict_cmd = sub.add_parser("dictionary", help="Inspect or reset the dictionary file")
    dict_sub = dict_cmd.add_subparsers(dest="dictionary_cmd", required=True)
    show_cmd = dict_sub.add_parser("show", help="List dictionary entries")
    show_cmd.add_argument("--dictionary", default=None)
    show_cmd.set_defaults(func=cmd_dictionary_show)
    clear_cmd = dict_sub.add_parser("clear", help="Delete the dictionary file")
    clear_cmd.add_argument("--dictionary", default=None)
    clear_cmd.set_defaults(func=cmd_dictionary_clear)

    bench_cmd = sub.add_parser("benchmark", help="Compare direct and dictionary rendering")
    bench_cmd.add_argument("--text", default="0123456789:.")
    bench_cmd.add_argument("--iterations", type=int, default=20)
    bench_cmd.add_argument("--prop", action="append", metavar="KEY=VALUE")
    bench_cmd.set_defaults(func=cmd_benchmark)

    config_cmd = sub.add_parser("config", help="Settings")
    config_sub = config_cmd.add_subparsers(dest="config_cmd", required=True)
    config_show = config_sub.add_parser("show", help="Print effective settings")
    config_show.set_defaults(func=cmd_config_show)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = _load_cfg(args)
    configure_logging(keep_files=cfg.logging.keep_log_files, console=cfg.logging.console, level=cfg.logging.level)
    try:
        return int(args.func(args))
    except (TextRasterError, argparse.ArgumentTypeError) as exc:
        logger.error("command failed: %s", exc, extra={"event": "command_failed"})
        _print_json({"success": False, "error": str(exc), "kind": type(exc).__name__})
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
