"""``page9 run``: serve a kernel over HTTP.

Builds ``KernelOptions`` from the command line and hands the kernel (an
ASGI app) to uvicorn. The kernel's lifespan handler performs install,
activate and worker-pool startup.
"""

import argparse
import logging

from page9.kernel import Kernel
from page9.options import KernelOptions


def options_from_args(args: argparse.Namespace) -> KernelOptions:
    return KernelOptions(
        origin=args.origin,
        config_path=args.config_path,
        cache_prefix=args.cache_prefix,
        worker_timeout=args.worker_timeout,
        host=args.host,
        port=args.port,
        log_level=args.log_level,
    )


def run_server(args: argparse.Namespace) -> None:
    """Start the page9 server."""
    options = options_from_args(args)
    logging.basicConfig(
        level=options.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        import uvicorn
    except ImportError as exc:
        msg = "page9 run requires uvicorn. Install it with: pip install 'page9[serve]'"
        raise SystemExit(msg) from exc

    uvicorn.run(
        Kernel(options),
        host=options.host,
        port=options.port,
        log_level=options.log_level,
        lifespan="on",
    )
