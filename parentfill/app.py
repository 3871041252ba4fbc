import argparse
from pathlib import Path

from . import __version__
from .database import get_session
from .driver import BackfillDriver
from .env import Settings, load_env, load_settings
from .errors import BackfillError
from .logger import ConsoleReporter, get_logger, reset_logger
from .replication import NullBarrier
from .retry import RetryError, exponential_backoff, is_transient_error
from .storage import SqlMarkerStore, SqlRowStore
from .verify import find_violations


def _settings(args: argparse.Namespace) -> Settings:
    settings = load_settings()
    if args.db:
        settings.db_path = Path(args.db)
    if getattr(args, "batch_size", None) is not None:
        settings.batch_size = args.batch_size
    if args.key:
        settings.update_key = args.key
    if args.log_level:
        settings.log_level = args.log_level

    errors = settings.errors()
    if errors:
        print("Invalid configuration:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)
    if not settings.db_path.exists():
        raise SystemExit(f"Database not found: {settings.db_path}")

    reset_logger()
    get_logger(level=settings.log_level, log_dir=settings.log_dir)
    return settings


def cmd_populate(args: argparse.Namespace) -> None:
    settings = _settings(args)
    logger = get_logger()
    session = get_session(settings.db_path)
    driver = BackfillDriver(
        SqlRowStore(session),
        SqlMarkerStore(session),
        NullBarrier(),
        reporter=ConsoleReporter(logger=logger),
        update_key=settings.update_key,
        chunk_size=settings.batch_size,
        logger=logger,
    )

    run = driver.run
    if args.retries:
        def on_retry(attempt, error, delay):
            logger.warning("Retrying backfill", attempt=attempt, delay=delay, error=str(error))
            print(f"[retry {attempt}/{args.retries}] {error}")

        run = exponential_backoff(
            max_retries=args.retries,
            base_delay=2.0,
            exceptions=(BackfillError,),
            retry_if=is_transient_error,
            on_retry=on_retry,
        )(driver.run)

    try:
        result = run(force=args.force, recompute=args.recompute, start=args.start)
    except (BackfillError, RetryError) as e:
        raise SystemExit(f"Error: {e}")
    finally:
        session.close()

    logger.log_metrics_summary()
    print(f"Status: {result.status.value}")


def cmd_status(args: argparse.Namespace) -> None:
    settings = _settings(args)
    session = get_session(settings.db_path)
    try:
        store = SqlRowStore(session)
        marker = SqlMarkerStore(session).get(settings.update_key)
        store.check_available()
        lo, hi = store.min_id(), store.max_id()
        unresolved = store.count_unresolved()
    except BackfillError as e:
        raise SystemExit(f"Error: {e}")
    finally:
        session.close()

    print(f"Update key: {settings.update_key}")
    if marker is None:
        print("Marker: not set")
    else:
        print(f"Marker: set ({marker.ul_value})")
    if lo is None:
        print("Revisions: none")
    else:
        print(f"Revisions: rev_id {lo}..{hi}")
    print(f"Unresolved: {unresolved}")


def cmd_verify(args: argparse.Namespace) -> None:
    settings = _settings(args)
    session = get_session(settings.db_path)
    try:
        violations = find_violations(SqlRowStore(session), chunk_size=settings.batch_size, limit=args.limit)
    except BackfillError as e:
        raise SystemExit(f"Error: {e}")
    finally:
        session.close()

    if violations:
        print("Invalid:")
        for v in violations:
            print(f" - {v}")
        raise SystemExit(2)
    print("Valid")


def cmd_clear_marker(args: argparse.Namespace) -> None:
    settings = _settings(args)
    session = get_session(settings.db_path)
    try:
        existed = SqlMarkerStore(session).clear(settings.update_key)
    except BackfillError as e:
        raise SystemExit(f"Error: {e}")
    finally:
        session.close()
    get_logger().info("Completion marker cleared", key=settings.update_key, existed=existed)
    if existed:
        print(f"Cleared marker '{settings.update_key}'")
    else:
        print(f"Marker '{settings.update_key}' was not set")


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {number}")
    return number


def _common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--db", help="Path to SQLite database (or set PARENTFILL_DB)")
    p.add_argument("--key", help="Completion marker key (default: 'populate rev_parent_id')")
    p.add_argument("--log-level", help="Console log level (or set PARENTFILL_LOG_LEVEL)")


def main(argv=None):
    load_env()
    parser = argparse.ArgumentParser(prog="parentfill", description="Populate rev_parent_id in resumable batches")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    pop = subparsers.add_parser("populate", help="Populate rev_parent_id for revisions that lack it")
    _common(pop)
    pop.add_argument("--batch-size", type=int, help="Revisions per batch (default: 200, or PARENTFILL_BATCH_SIZE)")
    pop.add_argument("--force", action="store_true", help="Run even if the update is marked as done")
    pop.add_argument("--recompute", action="store_true", help="Re-derive already populated rows as well")
    pop.add_argument("--start", type=int, help="Resume from this rev_id")
    pop.add_argument("--retries", type=_non_negative_int, default=0, help="Retry the whole run on transient database errors")
    pop.set_defaults(func=cmd_populate)

    st = subparsers.add_parser("status", help="Show completion marker and unresolved revision count")
    _common(st)
    st.set_defaults(func=cmd_status)

    ver = subparsers.add_parser("verify", help="Check populated parents against the resolution rules")
    _common(ver)
    ver.add_argument("--batch-size", type=int, help="Revisions read per batch")
    ver.add_argument("--limit", type=int, default=100, help="Stop after this many violations")
    ver.set_defaults(func=cmd_verify)

    clr = subparsers.add_parser("clear-marker", help="Clear the completion marker so the update runs again")
    _common(clr)
    clr.set_defaults(func=cmd_clear_marker)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
