"""page9 CLI: serve a kernel in front of an origin, validate configuration.

Entry point registered as ``page9`` in ``pyproject.toml``::

    [project.scripts]
    page9 = "page9.cli:main"
"""

import argparse
import sys

from page9 import __version__
from page9.options import KernelOptions

_DEFAULTS = KernelOptions()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``page9`` command."""
    parser = argparse.ArgumentParser(
        prog="page9",
        description="page9 - a request-interception kernel with routing, mounts and caching.",
    )
    parser.add_argument("--version", action="version", version=f"page9 {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    # -- page9 run --------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Serve a kernel in front of an origin")
    run_parser.add_argument("origin", help="Origin base URL (e.g. http://localhost:9000)")
    run_parser.add_argument("--host", default=_DEFAULTS.host, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=_DEFAULTS.port, help="Bind port number")
    run_parser.add_argument(
        "--config-path",
        default=_DEFAULTS.config_path,
        help="Configuration resource path on the origin",
    )
    run_parser.add_argument(
        "--cache-prefix",
        default=_DEFAULTS.cache_prefix,
        help="Cache namespace prefix",
    )
    run_parser.add_argument(
        "--worker-timeout",
        type=float,
        default=_DEFAULTS.worker_timeout,
        help="Worker dispatch deadline in seconds",
    )
    run_parser.add_argument(
        "--log-level",
        default=_DEFAULTS.log_level,
        choices=["debug", "info", "warning", "error"],
        help="Logging level",
    )

    # -- page9 check ------------------------------------------------------
    check_parser = subparsers.add_parser("check", help="Validate a configuration file")
    check_parser.add_argument("config", help="Path to a page9.config.json file")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from page9.cli._run import run_server

        run_server(args)
    elif args.command == "check":
        from page9.cli._check import run_check

        run_check(args)
