"""``page9 check``: configuration validation command.

Parses a configuration file with the same rules the kernel applies and
prints a summary. Exits with code 1 if the file is unreadable or invalid.
"""

import argparse
import sys

from page9.errors import ConfigurationError
from page9.loader import load_config_file


def run_check(args: argparse.Namespace) -> None:
    """Validate ``args.config`` and print what it declares."""
    try:
        config = load_config_file(args.config)
    except (ConfigurationError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(f"{args.config}: ok")
    print(f"  strategy:   {config.kernel.caching_strategy}")
    print(f"  intercept:  {', '.join(config.kernel.intercept_patterns) or '(none)'}")
    print(f"  mounts:     {len(config.namespace.mounts)}")
    for mount in config.namespace.mounts:
        print(f"    {mount.path} -> {mount.target} ({mount.type})")
    print(f"  routes:     {len(config.routes)}")
    for route in config.routes:
        print(f"    {route.pattern} -> {route.file}")
    if config.workers.enabled:
        pool = config.workers.pool
        print(f"  workers:    pool {pool.min}..{pool.max}, {len(config.workers.modules)} module(s)")
        for module in config.workers.modules:
            print(f"    {module.name}: {module.path}")
    else:
        print("  workers:    disabled")
