"""ASGI entry point and command line runner.

Serve with ``uvicorn --factory src.bulkybook.main:get_app`` or run
``python -m src.bulkybook.main --port 5000``.
"""

from __future__ import annotations

import argparse
import os
from typing import Sequence

from fastapi import FastAPI

from .bootstrap import Bootstrapper
from .config import SETTINGS_FILE_ENV, load_config


def get_app() -> FastAPI:
    """Application factory for ASGI servers."""
    return Bootstrapper().build()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bulkybook", description="Run the BulkyBook web application.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument("--settings", help="Path to the JSON settings file.")
    parser.add_argument("--environment", help="Hosting environment, e.g. Development or Production.")
    return parser.parse_args(argv)


def run(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.settings:
        os.environ[SETTINGS_FILE_ENV] = args.settings
    overrides = {"environment": args.environment} if args.environment else {}
    bootstrapper = Bootstrapper(load_config(**overrides))
    app = bootstrapper.build()
    bootstrapper.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    run()
