"""imgmc CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from . import __version__
from .config import load_config
from .descriptor import MAX_COUNT, PROVIDERS, QUALITIES, RESOLUTIONS, RequestDescriptor
from .engine import ImageEngine
from .errors import ImgmcError

logger = logging.getLogger(__name__)

LOG_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _count(value: str) -> int:
    try:
        count = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid count: {value!r}") from exc
    if not 1 <= count <= MAX_COUNT:
        raise argparse.ArgumentTypeError(f"count must be between 1 and {MAX_COUNT}")
    return count


def _log_level(value: str) -> str:
    upper_value = value.strip().upper()
    if upper_value == "WARN":
        upper_value = "WARNING"
    if upper_value not in LOG_LEVEL_NAMES:
        raise argparse.ArgumentTypeError(f"invalid log level '{value}'; choose one of: {', '.join(LOG_LEVEL_NAMES)}")
    return upper_value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="imgmc", description="Generate or edit images with an AI image API")
    parser.add_argument("prompt", help="Text prompt describing the image")
    parser.add_argument("-p", "--provider", choices=PROVIDERS, default="azure")
    parser.add_argument("--quality", choices=QUALITIES, default="high")
    parser.add_argument("--resolution", choices=RESOLUTIONS, default="1024x1024")
    parser.add_argument("-c", "--count", type=_count, default=1, help=f"Number of images (1-{MAX_COUNT})")
    parser.add_argument("-r", "--reference", type=Path, help="Reference image; switches to the edits endpoint")
    parser.add_argument("--config", type=Path, help="Config file (default: $XDG_CONFIG_HOME/imgmc/config.toml)")
    parser.add_argument("--log-level", dest="log_level", type=_log_level, default="WARNING")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _descriptor_from_args(args: argparse.Namespace) -> tuple[RequestDescriptor, float | None]:
    config = load_config(args.config)
    provider = config.provider(args.provider)
    descriptor = RequestDescriptor(
        prompt=args.prompt,
        endpoint_base=provider.api_base,
        credential=provider.api_key,
        deployment_id=provider.deployment,
        quality=args.quality,
        resolution=args.resolution,
        count=args.count,
        reference_image_path=args.reference,
        provider=args.provider,
        api_version=provider.api_version,
    )
    return descriptor, config.timeout_s


def run(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        descriptor, timeout_s = _descriptor_from_args(args)
        engine = ImageEngine(descriptor, timeout_s=timeout_s)
        engine.run(emit=print)
    except ImgmcError as exc:
        logger.debug("Run failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
