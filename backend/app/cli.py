"""The ``dirindex`` command: load the config file and serve the app with uvicorn."""

import argparse
import sys

import structlog
import uvicorn
from pydantic import ValidationError

from app.config.config import DEFAULT_CONFIG_PATH, load_settings
from app.main import create_app
from app.services.templates import TemplateLoadError

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dirindex", description="Serve directory listings as HTML and JSON.")
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help=f"Path to the TOML config file (default: $DIRINDEX_CONFIG or {DEFAULT_CONFIG_PATH})",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args.config)
        app = create_app(settings)
    except (ValidationError, TemplateLoadError) as exc:
        print(f"dirindex: invalid configuration: {exc}", file=sys.stderr)
        return 2

    host = str(settings.network.address)
    logger.info("dirindex_listening", address=host, port=settings.network.port)
    uvicorn.run(app, host=host, port=settings.network.port, log_level=settings.log_level)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
