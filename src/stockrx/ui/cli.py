# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from stockrx.app import (
    build_registry,
    check_all_patches,
    counter_stats,
    execute_patch,
    fix_counters,
    load_patch_config,
    release_patch_lock,
    run_scheduled_expiry_update,
    scan_counters,
)
from stockrx.adapters.patch_config import write_starter_config
from stockrx.config import (
    ConfigurationError,
    configure_logging,
    get_executor_config,
    get_patch_config_path,
    parse_patch_options,
)
from stockrx.config.env import env_bool
from stockrx.domain.counters import CountedEntity
from stockrx.domain.patches import ExecutionError, PatchNotFoundError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import FrameType

    from stockrx.domain.counters import AggregateReport
    from stockrx.domain.patches import ExecutionReport, ExecutionStatistics, PatchRegistry

log = logging.getLogger(__name__)

MAX_LISTED_FAILURES = 10


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="StockRx maintenance tooling")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    patches = subparsers.add_parser("patches", help="Data patch commands")
    patches_sub = patches.add_subparsers(dest="patch_command", required=True)

    patch_list = patches_sub.add_parser("list", help="List registered data patches")
    patch_list.add_argument("--category", type=str, help="Only show patches of this category")
    patch_list.add_argument(
        "--all",
        action="store_true",
        help="Include patches whose status is not active",
    )

    patch_info = patches_sub.add_parser("info", help="Show metadata of one data patch")
    patch_info.add_argument("name", type=str)

    patch_execute = patches_sub.add_parser("execute", help="Run a data patch")
    patch_execute.add_argument("name", type=str)
    patch_execute.add_argument(
        "assignments",
        nargs="*",
        metavar="KEY=VALUE",
        help="Options such as BATCH_SIZE=500 DRY_RUN=true ADJUSTMENT_VALUE=10",
    )
    patch_execute.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate the run without persisting changes (same as DRY_RUN=true)",
    )

    patch_check = patches_sub.add_parser(
        "check-all",
        help="Show how many records every registered patch would touch",
    )
    patch_check.add_argument("assignments", nargs="*", metavar="KEY=VALUE")

    patches_sub.add_parser("stats", help="Show registry statistics")
    patches_sub.add_parser("reload", help="Rebuild the registry from its sources")

    patch_unlock = patches_sub.add_parser(
        "unlock",
        help="Clear the run lock a crashed or killed run left behind",
    )
    patch_unlock.add_argument("name", type=str)

    patch_generate = patches_sub.add_parser(
        "generate-config",
        help="Write a starter data patch config file",
    )
    patch_generate.add_argument("--path", type=str, help="Target file (defaults to config)")
    patch_generate.add_argument("--force", action="store_true", help="Overwrite an existing file")

    patch_scheduled = patches_sub.add_parser(
        "scheduled-expiry",
        help="Run the scheduled batch expiry update",
    )
    patch_scheduled.add_argument("assignments", nargs="*", metavar="KEY=VALUE")

    counters = subparsers.add_parser("counters", help="Counter cache commands")
    counters_sub = counters.add_subparsers(dest="counter_command", required=True)
    kinds = [kind.value for kind in CountedEntity]

    counter_check = counters_sub.add_parser("check", help="Compare counters with live counts")
    counter_check.add_argument("kind", choices=kinds)
    counter_check.add_argument("entity_id", nargs="?", type=int)

    counter_fix = counters_sub.add_parser("fix", help="Repair inconsistent counters")
    counter_fix.add_argument("kind", choices=kinds)
    counter_fix.add_argument("entity_id", nargs="?", type=int)

    counter_scan = counters_sub.add_parser("scan", help="Scan every entity of a kind")
    counter_scan.add_argument("kind", choices=kinds)
    counter_scan.add_argument("--top", type=int, default=5, help="Worst offenders to list")
    counter_scan.add_argument("--repair", action="store_true", help="Repair what is found")

    return parser.parse_args(list(argv))


def _parse_assignments(pairs: Sequence[str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for pair in pairs:
        key, separator, value = pair.partition("=")
        if not separator or not key.strip():
            raise ValueError(f"Expected KEY=VALUE, got: {pair}")
        values[key.strip().upper()] = value.strip()
    return values


def _environment(args: argparse.Namespace) -> dict[str, str]:
    """``os.environ`` overlaid with the positional KEY=VALUE pairs."""

    env = dict(os.environ)
    env.update(_parse_assignments(getattr(args, "assignments", None) or ()))
    if getattr(args, "dry_run", False):
        env["DRY_RUN"] = "true"
    return env


# Output ----------------------------------------------------------------------


def _print_statistics(statistics: ExecutionStatistics) -> None:
    print(f"Records seen: {statistics.total_seen}")
    print(f"Succeeded: {statistics.succeeded}")
    print(f"Failed: {statistics.failed}")
    print(f"Batches: {statistics.batch_count}")
    print(f"Elapsed: {statistics.elapsed_seconds:.2f}s")
    if statistics.total_before or statistics.total_after:
        sign = "+" if statistics.delta >= 0 else ""
        print(f"Total before: {statistics.total_before:,}")
        print(f"Total after: {statistics.total_after:,}")
        print(f"Delta: {sign}{statistics.delta:,}")
    for failure in statistics.failures[:MAX_LISTED_FAILURES]:
        print(f"  record {failure.record_id}: {failure.error}")
    hidden = len(statistics.failures) - MAX_LISTED_FAILURES
    if hidden > 0:
        print(f"  ... and {hidden} more failures")


def _print_report(report: ExecutionReport) -> None:
    print(f"Data patch: {report.patch_name}")
    print(f"Dry run: {'yes' if report.dry_run else 'no'}")
    print(f"Target records: {report.target_count}")
    _print_statistics(report.statistics)
    if report.summary:
        print(report.summary)
    print("Execution finished")


def _print_available(registry: PatchRegistry) -> None:
    print("Available patches:")
    for name in registry.names:
        print(f"  {name}")


def _print_scan(report: AggregateReport) -> None:
    print(f"Scanned {report.entities_scanned} {report.kind} entities")
    print(f"Discrepancies: {report.discrepancies_found}")
    print(f"Consistency rate: {report.consistency_rate:.2f}%")
    for offender in report.worst_offenders:
        counters = ", ".join(
            f"{item.counter} {item.cached}->{item.actual}" for item in offender.discrepancies
        )
        print(f"  {offender.entity}: {offender.issue_count} ({counters})")
    if report.repaired:
        print(f"Repaired entities: {len(report.repaired)}")
    for failure in report.failures:
        print(f"  FAILED {failure.entity}: {failure.error}")


# Commands --------------------------------------------------------------------


def _run_patches(  # noqa: C901, PLR0911, PLR0912
    args: argparse.Namespace, env: Mapping[str, str]
) -> int:
    command = args.patch_command

    if command == "generate-config":
        if args.path is None:
            path = get_patch_config_path(env=env)
        else:
            path = Path(args.path).expanduser()
        force = args.force or env_bool(env, "FORCE", False)
        try:
            written = write_starter_config(path, force=force)
        except FileExistsError:
            print(f"Config file already exists: {path}")
            print("Use --force or FORCE=true to overwrite it.")
            return 1
        print(f"Generated config file: {written}")
        return 0

    if command == "unlock":
        if release_patch_lock(args.name):
            print(f"Released run lock for {args.name}")
        else:
            print(f"No run lock held for {args.name}")
        return 0

    registry = build_registry(env=env)

    if command == "list":
        registrations = registry.list_patches(
            category=args.category,
            status=None if args.all else "active",
        )
        print("Registered data patches:")
        for registration in registrations:
            metadata = registration.metadata
            print(f"  {registration.name} [{metadata.category}/{metadata.status}]")
            if metadata.description:
                print(f"      {metadata.description}")
        return 0

    if command == "info":
        try:
            registration = registry.find_patch(args.name)
        except PatchNotFoundError as exc:
            print(f"Error: {exc}")
            _print_available(registry)
            return 1
        metadata = registration.metadata
        print(f"Data patch: {registration.name}")
        print(f"Class: {registration.class_name}")
        print(f"Description: {metadata.description}")
        print(f"Category: {metadata.category}")
        print(f"Status: {metadata.status}")
        print(f"Target tables: {', '.join(metadata.target_tables) or '-'}")
        print(f"Estimated records: {metadata.estimated_records}")
        print(f"Memory limit: {metadata.memory_limit} MB")
        print(f"Batch size: {metadata.batch_size}")
        print(f"Risk level: {metadata.risk_level}")
        print(f"Tags: {', '.join(metadata.tags) or '-'}")
        print(f"Source: {metadata.source}")
        print(f"Registered at: {registration.registered_at.isoformat()}")
        return 0

    if command == "stats":
        stats = registry.statistics()
        print(f"Total patches: {stats.total}")
        for category, count in sorted(stats.by_category.items()):
            print(f"  category {category}: {count}")
        for status, count in sorted(stats.by_status.items()):
            print(f"  status {status}: {count}")
        if stats.last_registered_at is not None:
            print(f"Last registered: {stats.last_registered_at.isoformat()}")
        if stats.loaded_at is not None:
            print(f"Loaded at: {stats.loaded_at.isoformat()}")
        return 0

    if command == "reload":
        count = registry.reload()
        print(f"Reload complete: {count} patches loaded")
        return 0

    if command == "check-all":
        options = parse_patch_options(env)
        print("Projected impact of every data patch:")
        for estimate in check_all_patches(options=options, registry=registry):
            if estimate.ok:
                print(f"  {estimate.patch_name}: {estimate.target_count} target records")
            else:
                print(f"  {estimate.patch_name}: ERROR {estimate.error}")
        return 0

    settings = get_executor_config(env)
    patch_config = load_patch_config(env)

    if command == "execute":
        if not registry.patch_exists(args.name):
            print(f"Error: Data patch not found: {args.name}")
            _print_available(registry)
            return 1
        report = execute_patch(
            args.name,
            options=parse_patch_options(env),
            settings=settings,
            registry=registry,
            security=patch_config.security,
        )
        _print_report(report)
        return 0

    if command == "scheduled-expiry":
        report = run_scheduled_expiry_update(
            settings=settings,
            registry=registry,
            schedule=patch_config.scheduling.expiry_update,
            security=patch_config.security,
        )
        _print_report(report)
        return 0

    raise ValueError(f"Unsupported patches command: {command}")


def _run_counters(args: argparse.Namespace) -> int:
    kind = CountedEntity(args.kind)
    command = args.counter_command

    if command == "check" and args.entity_id is not None:
        readings = counter_stats(kind, args.entity_id)
        print(f"Counters of {kind} {args.entity_id}:")
        for reading in readings:
            state = "ok" if reading.consistent else f"MISMATCH ({reading.difference:+d})"
            print(f"  {reading.counter}: cached={reading.cached} actual={reading.actual} {state}")
        return 0 if all(reading.consistent for reading in readings) else 1

    if command == "fix" and args.entity_id is not None:
        repaired = fix_counters(kind, args.entity_id)
        if not repaired:
            print(f"{kind} {args.entity_id}: counters already consistent")
        for item in repaired:
            print(f"Repaired {item.entity}.{item.counter}: {item.cached} -> {item.actual}")
        return 0

    repair = command == "fix" or (command == "scan" and args.repair)
    top = args.top if command == "scan" else 5
    report = scan_counters(kind, repair=repair, top=top)
    _print_scan(report)
    if report.failures:
        return 1
    return 0 if repair or report.clean else 1


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.verbose:
            configure_logging(level=logging.DEBUG, force=True)
        env = _environment(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "patches":
            exit_code = _run_patches(parsed_args, env)
        elif parsed_args.command == "counters":
            exit_code = _run_counters(parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ConfigurationError, ValueError) as exc:
        log.error("Invalid options: %s", exc)  # noqa: TRY400
        print(f"Error: {exc}")
        sys.exit(2)
    except ExecutionError as exc:
        log.error("Data patch aborted: %s", exc)  # noqa: TRY400
        print(f"Error: {exc}")
        if exc.statistics is not None:
            print("Partial statistics:")
            _print_statistics(exc.statistics)
        sys.exit(1)
    except Exception:
        log.exception("Fatal error during maintenance run")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()
