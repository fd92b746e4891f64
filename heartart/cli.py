from __future__ import annotations

import argparse
import asyncio
import logging
import os
import random
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import Settings, resolve_api_key
from .errors import InvalidColorError
from .csv_parser import read_bpm_csv, read_csv_text
from .keystore import clear_api_key, load_api_key, mask_key, save_api_key
from .logging_utils import configure_logging, log_exception, setup_file_logger
from .models import (
    ExternalModelSpec,
    LocalCsvExtractor,
    SeriesExtractor,
    aclose_model,
    resolve_extractor,
)
from .pipeline import ArtResult, generate_art
from .prompt import classify, compute_stats, synthesize
from .providers.litellm import LiteLLMAdapter
from .schema import COLORS, DEFAULT_COLOR, Color, parse_color
from .spinner import Spinner, render_error

DEFAULT_OUTPUT = "heartart.jpg"
_LOGGER = logging.getLogger("heartart.cli")
_CONSOLE = Console()


def _chooser(seed: int | None) -> random.Random | None:
    return random.Random(seed) if seed is not None else None


def _color_arg(value: str) -> Color:
    try:
        return parse_color(value)
    except InvalidColorError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="heartart",
        description="Turn heart-rate CSV exports into abstract AI art.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("colors", help="List the available colors.")

    stats = sub.add_parser("stats", help="Show BPM statistics and mood bands for a CSV.")
    stats.add_argument("csv", type=Path)

    prompt = sub.add_parser("prompt", help="Print the image prompt for a CSV.")
    prompt.add_argument("csv", type=Path)
    prompt.add_argument("--color", type=_color_arg, default=DEFAULT_COLOR)
    prompt.add_argument("--seed", type=int, default=None)

    generate = sub.add_parser("generate", help="Generate an image from a CSV.")
    generate.add_argument("csv", type=Path)
    generate.add_argument("--color", type=_color_arg, default=DEFAULT_COLOR)
    generate.add_argument("--output", type=Path, default=Path(DEFAULT_OUTPUT))
    generate.add_argument(
        "--extract",
        choices=["local", "ai"],
        default="ai",
        help="Read the BPM column locally or let the text model find it.",
    )
    generate.add_argument("--text-model", type=str, default=None)
    generate.add_argument("--image-model", type=str, default=None)
    generate.add_argument("--api-key", type=str, default=None)
    generate.add_argument("--seed", type=int, default=None)

    key = sub.add_parser("key", help="Manage the stored API key.")
    key_sub = key.add_subparsers(dest="key_command", required=True)
    key_set = key_sub.add_parser("set", help="Store an API key.")
    key_set.add_argument("value", type=str)
    key_sub.add_parser("show", help="Show the stored API key (masked).")
    key_sub.add_parser("clear", help="Remove the stored API key.")
    return parser


def _print_stats(path: Path) -> None:
    stats = compute_stats(read_bpm_csv(path))
    bands = classify(stats)
    table = Table(title=str(path), show_header=False)
    table.add_row("samples", str(stats.count))
    table.add_row("mean", f"{stats.mean:.2f}")
    table.add_row("min", f"{stats.minimum:.2f}")
    table.add_row("max", f"{stats.maximum:.2f}")
    table.add_row("range", f"{stats.range:.2f}")
    table.add_row("std dev", f"{stats.std_dev:.2f}")
    table.add_row("energy", bands.energy)
    table.add_row("volatility", bands.volatility)
    table.add_row("range band", bands.range)
    _CONSOLE.print(table)


async def _generate(args: argparse.Namespace, settings: Settings) -> ArtResult:
    api_key = resolve_api_key(args.api_key)
    text_model = args.text_model or settings.text_model
    image_model = LiteLLMAdapter(
        text_model=text_model,
        image_model=args.image_model or settings.image_model,
        api_key=api_key,
        max_points=settings.max_points,
    )
    extractor: SeriesExtractor
    if args.extract == "local":
        extractor = LocalCsvExtractor()
    else:
        extractor = resolve_extractor(
            ExternalModelSpec(model=text_model, api_key=api_key), settings=settings
        )
    try:
        return await generate_art(
            read_csv_text(args.csv),
            args.color,
            extractor=extractor,
            image_model=image_model,
            chooser=_chooser(args.seed),
            timeout=settings.timeout,
        )
    finally:
        await aclose_model(extractor)
        await aclose_model(image_model)


def _run_key_command(args: argparse.Namespace) -> int:
    if args.key_command == "set":
        path = save_api_key(args.value)
        _CONSOLE.print(f"Stored API key in {path}")
        return 0
    if args.key_command == "show":
        key = load_api_key()
        if key is None:
            _CONSOLE.print("No API key stored.")
            return 1
        _CONSOLE.print(mask_key(key))
        return 0
    if args.key_command == "clear":
        removed = clear_api_key()
        _CONSOLE.print("Removed stored API key." if removed else "No API key stored.")
        return 0
    return 1


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    try:
        parser = build_parser()
        args = parser.parse_args(argv)

        if args.command == "colors":
            for color in COLORS:
                _CONSOLE.print(color)
            return 0

        if args.command == "stats":
            _print_stats(args.csv)
            return 0

        if args.command == "prompt":
            color: Color = args.color
            _CONSOLE.print(
                synthesize(read_bpm_csv(args.csv), color, chooser=_chooser(args.seed)),
                markup=False,
                soft_wrap=True,
                highlight=False,
            )
            return 0

        if args.command == "generate":
            settings = Settings.from_env()
            setup_file_logger()
            with Spinner("Generating your heart art"):
                result = asyncio.run(_generate(args, settings))
            args.output.write_bytes(result.image)
            _CONSOLE.print(f"Wrote {len(result.image)} bytes to {args.output}")
            return 0

        if args.command == "key":
            return _run_key_command(args)

        parser.print_help()
        return 1
    except Exception as exc:
        debug = bool(os.environ.get("HEARTART_DEBUG"))
        _LOGGER.warning("heartart CLI failed: %s", exc, exc_info=debug)
        log_exception("heartart CLI", exc)
        render_error("heartart CLI", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
