"""Command-line interface for the multitarget library."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from multitarget.config import load_configuration, resolve_config_path
from multitarget.manager import LibraryManager

logger = logging.getLogger("multitarget.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="multitarget library utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="info")

    subparsers.add_parser("info", help="Print the library version and platform")

    check_parser = subparsers.add_parser("check", help="Test connectivity to every configured service")
    check_parser.add_argument(
        "--config",
        default=None,
        help="Path to the YAML configuration file (default: $MULTITARGET_CONFIG or config/library.yaml)",
    )

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP health/info service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the service")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port for the service (default: 8000)")
    serve_parser.add_argument("--config", default=None, help="Path to the YAML configuration file")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    if not args_list:
        args_list = ["info"]

    return parser.parse_args(args_list)


def _config_path(value: str | None) -> Path:
    return resolve_config_path(value or os.getenv("MULTITARGET_CONFIG"))


def _check(config: str | None) -> int:
    configuration = load_configuration(_config_path(config))
    with LibraryManager(configuration) as manager:
        healthy = manager.test_all_services()

    if healthy:
        print("All service tests passed.")
        return 0
    print("Service tests failed; see the log output above for details.")
    return 1


def _serve(*, host: str, port: int, config: str | None) -> None:
    from multitarget.service import create_app
    import uvicorn

    configuration = load_configuration(_config_path(config))
    logger.info("Starting multitarget service on http://%s:%s", host, port)
    uvicorn.run(create_app(configuration), host=host, port=port, log_level="info")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)

    if args.command == "check":
        return _check(args.config)
    if args.command == "serve":
        _serve(host=args.host, port=args.port, config=args.config)
        return 0

    print(LibraryManager.library_info())
    return 0


if __name__ == "__main__":
    sys.exit(main())
