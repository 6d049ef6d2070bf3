"""
pingrelay entry point.

Usage:
    python -m pingrelay 8.8.8.8 local=127.0.0.1 -c 4
    python -m pingrelay --all
    python -m pingrelay --loglevel DEBUG eu us-e
"""

import sys
import argparse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pingrelay",
        description="pingrelay - run several ping probes at once and stream their latencies"
    )
    parser.add_argument(
        "targets",
        nargs="*",
        help="Probe targets: id=address, a built-in server id (see --list), or an address"
    )
    parser.add_argument(
        "-c", "--count",
        type=int,
        default=None,
        help="Echo cycles per probe (default: settings 'ping_count' or 100)"
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Probe every built-in server"
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List the built-in servers and exit"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Stop all probes after this many seconds (default: run to completion)"
    )
    parser.add_argument(
        "-l", "--loglevel",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set logging level (default: WARNING). DEBUG writes to /tmp/pingrelay_debug.log"
    )
    parser.add_argument(
        "--logfile",
        default=None,
        help="Log file path (default: /tmp/pingrelay_debug.log when DEBUG/INFO)"
    )
    parser.add_argument(
        "--log-console",
        action="store_true",
        help="Also log to stderr"
    )
    return parser


def main(argv=None) -> int:
    """Main entry point for pingrelay."""
    parser = build_parser()
    args = parser.parse_args(argv)

    from .logging import setup_logging, DEFAULT_LOG_FILE
    log_file = args.logfile
    if log_file is None and args.loglevel in ("DEBUG", "INFO"):
        log_file = DEFAULT_LOG_FILE
    setup_logging(level=args.loglevel, log_file=log_file, console=args.log_console)

    from .core.catalog import DEFAULT_PING_COUNT, DEFAULT_SERVERS
    from .core.errors import ProbeError
    from .core.settings import get_ping_count

    if args.list:
        for server in DEFAULT_SERVERS:
            print(f"{server.id:<6} {server.name:<16} {server.address}")
        return 0

    count = args.count if args.count is not None else get_ping_count(DEFAULT_PING_COUNT)

    # Import here to avoid loading Qt for --help / --list
    from .host.app import parse_target, run_console

    targets = list(args.targets)
    if args.all:
        targets.extend(server.id for server in DEFAULT_SERVERS)
    if not targets:
        parser.error("no targets given (pass addresses, server ids or --all)")

    requests = []
    seen = set()
    for target in targets:
        try:
            request = parse_target(target, count)
        except ProbeError as e:
            parser.error(str(e))
        if request.identifier in seen:
            parser.error(f"duplicate probe id: {request.identifier}")
        seen.add(request.identifier)
        requests.append(request)

    return run_console(requests, timeout_s=args.timeout)


if __name__ == "__main__":
    sys.exit(main())
