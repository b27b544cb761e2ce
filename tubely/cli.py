from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from .core.errors import MalformedMedia, ProcessFailure
from .ingest.aspect import AspectBands, classify_aspect
from .ingest.faststart import FastStartRemuxer
from .ingest.models import Geometry
from .ingest.probe import FFprobeProber
from .ingest.tools import tool_available

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "check", False):
        _run_environment_check(args)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI.

    Returns:
        The argument parser.
    """
    parser = argparse.ArgumentParser(description="Tubely ingest developer CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of ffmpeg/ffprobe dependencies")
    parser.add_argument("--ffmpeg", default="ffmpeg", help="ffmpeg executable (default: ffmpeg)")
    parser.add_argument("--ffprobe", default="ffprobe", help="ffprobe executable (default: ffprobe)")

    subparsers = parser.add_subparsers(dest="command")

    probe_parser = subparsers.add_parser("probe", help="Report stream geometry and aspect category for a file")
    probe_parser.add_argument("--file", required=True, help="Path to the source media file")
    _add_band_arguments(probe_parser)
    probe_parser.set_defaults(func=_cmd_probe)

    faststart_parser = subparsers.add_parser("faststart", help="Remux a file so playback can start before download completes")
    faststart_parser.add_argument("--file", required=True, help="Path to the source media file")
    faststart_parser.add_argument("--out", required=True, help="Destination path for the remuxed copy")
    faststart_parser.set_defaults(func=_cmd_faststart)

    classify_parser = subparsers.add_parser("classify", help="Classify a width/height pair without touching media")
    classify_parser.add_argument("--width", type=int, required=True)
    classify_parser.add_argument("--height", type=int, required=True)
    _add_band_arguments(classify_parser)
    classify_parser.set_defaults(func=_cmd_classify)
    return parser


def _add_band_arguments(parser: argparse.ArgumentParser) -> None:
    defaults = AspectBands()
    parser.add_argument("--landscape-min", type=float, default=defaults.landscape_min)
    parser.add_argument("--landscape-max", type=float, default=defaults.landscape_max)
    parser.add_argument("--portrait-min", type=float, default=defaults.portrait_min)
    parser.add_argument("--portrait-max", type=float, default=defaults.portrait_max)


def _bands_from_args(args: argparse.Namespace) -> AspectBands:
    return AspectBands(
        landscape_min=args.landscape_min,
        landscape_max=args.landscape_max,
        portrait_min=args.portrait_min,
        portrait_max=args.portrait_max,
    )


def _cmd_probe(args: argparse.Namespace) -> None:
    """Probe a media file and print its geometry and category.

    Args:
        args: The command-line arguments.
    """
    media_path = _existing_path(args.file)
    try:
        geometry = FFprobeProber(args.ffprobe).probe(media_path)
        category = classify_aspect(geometry, _bands_from_args(args))
    except ProcessFailure as exc:
        console.print(f"[red]ffprobe failed:[/] {exc.stderr.strip() or exc.message}")
        sys.exit(3)
    except MalformedMedia as exc:
        console.print(f"[red]Unusable media:[/] {exc.message}")
        sys.exit(4)
    console.print_json(
        data={
            "file": str(media_path),
            "width": geometry.width,
            "height": geometry.height,
            "category": category.value,
        }
    )


def _cmd_faststart(args: argparse.Namespace) -> None:
    media_path = _existing_path(args.file)
    output = Path(args.out).expanduser().resolve()
    output.parent.mkdir(parents=True, exist_ok=True)
    try:
        FastStartRemuxer(args.ffmpeg).remux(media_path, output)
    except ProcessFailure as exc:
        console.print(f"[red]ffmpeg failed:[/] {exc.stderr.strip() or exc.message}")
        sys.exit(3)
    console.print(f"[green]Fast-start copy written to {output}[/]")


def _cmd_classify(args: argparse.Namespace) -> None:
    try:
        category = classify_aspect(Geometry(args.width, args.height), _bands_from_args(args))
    except MalformedMedia as exc:
        console.print(f"[red]{exc.message}[/]")
        sys.exit(4)
    console.print(category.value)


def _existing_path(raw: str) -> Path:
    media_path = Path(raw).expanduser().resolve()
    if not media_path.exists():
        console.print(f"[red]File not found: {media_path}[/]")
        sys.exit(2)
    return media_path


def _run_environment_check(args: argparse.Namespace) -> None:
    """Check for the presence of required external dependencies."""
    results = {
        "ffmpeg": tool_available(args.ffmpeg),
        "ffprobe": tool_available(args.ffprobe),
    }

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing dependencies detected. Install ffmpeg (which ships ffprobe).[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
