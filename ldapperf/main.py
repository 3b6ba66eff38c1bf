from __future__ import annotations

import argparse
import logging
import os
import sys

from .client import ClientFactory, Ldap3Client
from .config import (
    DEFAULT_ITERATIONS,
    DEFAULT_TIMEOUT_S,
    DEFAULT_URI,
    DEFAULT_WORKERS,
    SUBST_CHAR,
    Configuration,
    ConfigurationError,
    SearchScope,
)
from .names import LoadError, NameCorpus, load_names
from .runner import RunController
from .stats import AggregateStats, render_csv, render_report

LOGGER = logging.getLogger("ldapperf")

EXIT_USAGE = 64

EXAMPLE = (
    'example:\n  %(prog)s -H ldap://127.0.0.1 -D "cn=manager,dc=example,dc=org" '
    '-w "letmein" -b "dc=example,dc=org" -s sub'
)


def env_timeout() -> float:
    timeout_str = os.environ.get("LDAPPERF_TIMEOUT")
    if timeout_str is None:
        return DEFAULT_TIMEOUT_S
    try:
        return float(timeout_str)
    except ValueError:
        print(
            f"invalid LDAPPERF_TIMEOUT value {timeout_str!r}; defaulting to {DEFAULT_TIMEOUT_S:g}",
            file=sys.stderr,
        )
        return DEFAULT_TIMEOUT_S


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ldapperf",
        description="Simple LDAP search performance tool",
        epilog=EXAMPLE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-H",
        dest="uri",
        default=os.environ.get("LDAPPERF_URI", DEFAULT_URI),
        help=f"Host to connect to (default {DEFAULT_URI})",
    )
    parser.add_argument(
        "-D",
        dest="bind_dn",
        default=os.environ.get("LDAPPERF_BIND_DN"),
        help="Bind DN",
    )
    parser.add_argument(
        "-w",
        dest="password",
        default=os.environ.get("LDAPPERF_BIND_PASSWORD"),
        help="Bind password",
    )
    parser.add_argument(
        "-s",
        dest="scope",
        default=SearchScope.ONE.value,
        help="Search scope, one of (one, sub, children, base)",
    )
    parser.add_argument(
        "-o",
        dest="ordered",
        action="store_true",
        help="Search for each of the names in the -r <file> in order, using a single thread",
    )
    parser.add_argument(
        "-d",
        dest="decode",
        action="store_true",
        help="Decode received entries",
    )
    parser.add_argument(
        "-S",
        dest="stats",
        action="store_true",
        help="Print statistics after all queries have completed",
    )
    parser.add_argument(
        "-v",
        dest="verbose",
        action="count",
        default=0,
        help="Output more debugging information, repeat to increase verbosity",
    )
    parser.add_argument(
        "-q",
        dest="quiet",
        action="count",
        default=0,
        help="Produce less verbose output (CSV statistics)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=env_timeout(),
        help="Connection and search timeout in seconds",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for random name selection",
    )

    search = parser.add_argument_group("search options")
    search.add_argument(
        "-b",
        dest="base_dn",
        default="",
        help=f"DN to start the search from ('{SUBST_CHAR}' is replaced with a name from -r <file>)",
    )
    search.add_argument(
        "-f",
        dest="search_filter",
        default=None,
        help=f"Filter to use when searching ('{SUBST_CHAR}' is replaced with a name from -r <file>)",
    )
    search.add_argument(
        "-l",
        dest="loops",
        type=int,
        default=DEFAULT_ITERATIONS,
        help="How many searches a thread should perform",
    )
    search.add_argument(
        "-t",
        dest="threads",
        type=int,
        default=DEFAULT_WORKERS,
        help="How many threads we should spawn",
    )
    search.add_argument(
        "-r",
        dest="names_file",
        default=None,
        help="List of names to use when searching",
    )
    search.add_argument(
        "-R",
        dest="rebind",
        action="store_true",
        help="Rebind after every search operation",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> Configuration:
    config = Configuration(
        base_dn=args.base_dn,
        uri=args.uri,
        bind_dn=args.bind_dn,
        password=args.password,
        search_filter=args.search_filter,
        scope=SearchScope.parse(args.scope),
        iterations=args.loops,
        workers=args.threads,
        timeout_s=args.timeout,
        rebind=args.rebind,
        ordered=args.ordered,
        decode_entries=args.decode,
        names_file=args.names_file,
        verbosity=args.verbose - args.quiet,
        print_stats=args.stats,
        seed=args.seed,
    )
    config.validate()
    return config


def setup_logging(verbosity: int) -> None:
    if verbosity < 0:
        level = logging.WARNING
    elif verbosity == 0:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s",
    )


def print_stats(config: Configuration, stats: AggregateStats) -> None:
    if config.verbosity < 0:
        sys.stdout.write(render_csv(stats))
    else:
        print(render_report(stats))
    sys.stdout.flush()


def main(argv: list[str] | None = None, client_factory: ClientFactory = Ldap3Client) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose - args.quiet)

    try:
        config = config_from_args(args)
    except ConfigurationError as exc:
        LOGGER.error("%s", exc)
        parser.print_usage(sys.stderr)
        return EXIT_USAGE

    corpus = NameCorpus()
    if config.substitute:
        try:
            corpus = load_names(config.names_file, trace=config.verbosity > 1)
        except LoadError as exc:
            LOGGER.error("%s", exc)
            return 1

    controller = RunController(config, corpus, client_factory)
    # Clients are built before any worker starts, so an unsupported scope lands here.
    try:
        result = controller.run()
    except ConfigurationError as exc:
        LOGGER.error("%s", exc)
        parser.print_usage(sys.stderr)
        return EXIT_USAGE

    if config.print_stats:
        print_stats(result.config, result.stats)

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
