"""CLI entrypoint for the plantmap bubble map renderer."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .canvas import MatplotlibCanvas
from .config import AppConfig, default_config, load_config
from .render import format_report_lines, run_bubble_map
from .util import setup_logging

LOGGER = logging.getLogger("plantmap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plantmap",
        description="US power plant capacity bubble map.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    render_p = subparsers.add_parser("render", help="Render the bubble map to PNG or SVG.")
    render_p.add_argument(
        "--config",
        default=None,
        help="Path to YAML config. Built-in defaults are used when omitted.",
    )
    render_p.add_argument("--output", default=None, help="Override output.path from config.")
    render_p.add_argument("--verbose", action="store_true", help="Enable debug logs.")
    render_p.add_argument(
        "--show",
        action="store_true",
        help="Open an interactive window with hover tooltips after rendering.",
    )
    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config) if args.config else default_config(Path.cwd())
    setup_logging(cfg.output.log_file, verbose=args.verbose)
    return cfg


def _run_render(cfg: AppConfig, *, output: str | None, show: bool) -> int:
    canvas = MatplotlibCanvas(cfg.output, unit=cfg.legend.unit)
    report = run_bubble_map(
        cfg,
        canvas=canvas,
        output_path=Path(output).resolve() if output else None,
    )
    for line in format_report_lines(report):
        LOGGER.info(line)
    if not report.ok:
        return 1
    if show and report.scene is not None:
        canvas.show(report.scene)
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    try:
        cfg = _load_and_setup(args)
    except (FileNotFoundError, ValueError) as exc:
        logging.basicConfig(level=logging.INFO)
        LOGGER.error("Invalid configuration: %s", exc)
        return 2
    command = str(args.command)
    if command == "render":
        return _run_render(cfg, output=args.output, show=bool(args.show))
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
