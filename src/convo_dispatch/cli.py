"""CLI entrypoint for the daily dispatch job."""

import argparse
import json
import logging
import sys
import time

from convo_dispatch import __version__
from convo_dispatch.config import ConfigurationError, Settings
from convo_dispatch.io import MessageStoreError, RunLockError
from convo_dispatch.pipeline import RunReport, execute_daily_run
from convo_dispatch.runs import discover_run_summaries, inspect_run, prune_runs

EXIT_CONFIGURATION_ERROR = 1
EXIT_RUN_LOCKED = 3


class _DispatchProgressPrinter:
    """Print one line per finished conversation with elapsed time."""

    def __init__(self, label: str) -> None:
        self._label = label
        self._started_at = time.perf_counter()

    def __call__(self, done: int, total: int) -> None:
        elapsed = time.perf_counter() - self._started_at
        print(f"    {self._label}: {done}/{max(total, 1)} | elapsed {elapsed:.1f}s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="convo-dispatch",
        description="Forward today's redacted conversations to the analysis endpoint",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=str,
        default="configs/default.yaml",
        help="Path to YAML config file (default: configs/default.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level override (defaults to configured log_level).",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("info", help="Show current configuration")

    run_parser = sub.add_parser("run", help="Run today's selection and dispatch")
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Select conversations and save the plan without calling the endpoint.",
    )
    run_parser.add_argument(
        "--progress",
        action="store_true",
        help="Print a progress line after each dispatched conversation.",
    )

    list_runs_parser = sub.add_parser("list-runs", help="List saved daily runs.")
    list_runs_parser.add_argument("--limit", type=int, default=20, help="Maximum rows to print.")
    list_runs_parser.add_argument("--json", action="store_true", help="Print output as JSON.")

    inspect_run_parser = sub.add_parser("inspect-run", help="Show one saved daily run.")
    inspect_run_parser.add_argument("--run-id", type=str, required=True, help="Run date id.")
    inspect_run_parser.add_argument("--json", action="store_true", help="Print output as JSON.")

    prune_parser = sub.add_parser("prune-runs", help="Remove old daily run directories.")
    prune_parser.add_argument(
        "--keep-last",
        type=int,
        default=30,
        help="Always keep this many most recent runs (default: 30).",
    )
    prune_parser.add_argument(
        "--max-age-days",
        type=int,
        default=None,
        help="Also remove runs older than this many days.",
    )
    prune_parser.add_argument(
        "--yes",
        action="store_true",
        help="Apply deletion (default is a dry-run plan).",
    )
    prune_parser.add_argument("--json", action="store_true", help="Print output as JSON.")

    return parser


def configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.strip().upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_json(payload: dict | list[dict]) -> None:
    """Pretty-print JSON payload."""

    print(json.dumps(payload, indent=2, ensure_ascii=False))


def cmd_info(settings: Settings) -> None:
    print(f"convo-dispatch v{__version__}")
    print(f"  Endpoint:         {settings.analysis_endpoint or '(missing)'}")
    print(f"  API key set:      {bool(settings.analysis_api_key.strip())}")
    print(f"  Database:         {settings.db_path}")
    print(f"  Timezone:         {settings.timezone}")
    print(f"  Min candidates:   {settings.min_candidates}")
    print(f"  Static priority:  {len(settings.resolved_priority_conv_ids())}")
    print(f"  Include sender:   {settings.include_sender}")
    print(f"  Normalize ids:    {settings.normalize_conv_ids}")
    print(f"  HTTP timeout:     {settings.http_timeout_seconds}s")
    print(f"  Client attempts:  {settings.client_max_retries}")
    print(f"  Backoff seconds:  {settings.client_backoff_seconds}")
    print(f"  Concurrency:      {settings.dispatch_max_concurrency}")
    print(f"  Output dir:       {settings.output_dir}")


def _print_run_report(report: RunReport) -> None:
    window = report.window
    if report.no_data:
        print(f"[{window.iso_date}] No messages for today in timezone {window.timezone}.")
        return

    print(
        f"[{window.iso_date}] {report.row_count} messages in "
        f"{report.conversation_count} conversations; {len(report.candidates)} selected."
    )
    for item in report.candidates:
        tag = "priority" if item.is_priority else "fill"
        print(f"  - {item.key} ({item.message_count} messages, {tag})")

    if report.dry_run:
        print("Dry run: nothing was sent.")
        return

    summary = report.summary
    if summary.failure_count:
        print(f"Completed with {summary.failure_count} failed conversation(s).")
        for result in report.results:
            if not result.ok:
                print(f"  - {result.conv_id}: {result.error}")
    else:
        print("All conversations sent successfully.")


def cmd_run(settings: Settings, args: argparse.Namespace) -> None:
    """Run the daily job and exit with its disposition."""

    progress = _DispatchProgressPrinter("dispatch") if args.progress else None
    try:
        report = execute_daily_run(
            settings,
            dry_run=args.dry_run,
            progress_callback=progress,
        )
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(EXIT_CONFIGURATION_ERROR)
    except MessageStoreError as exc:
        print(f"Message database error: {exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIGURATION_ERROR)
    except RunLockError as exc:
        print(f"Could not acquire run lock: {exc}", file=sys.stderr)
        sys.exit(EXIT_RUN_LOCKED)

    _print_run_report(report)
    sys.exit(report.exit_code)


def cmd_list_runs(settings: Settings, args: argparse.Namespace) -> None:
    """List saved daily runs and key metadata."""

    summaries = discover_run_summaries(settings.output_dir)[: max(0, args.limit)]
    if args.json:
        _print_json([item.to_dict() for item in summaries])
        return
    if not summaries:
        print(f"No runs found under {settings.output_dir}")
        return
    for item in summaries:
        mode = " dry-run" if item.dry_run else ""
        lock = " locked" if item.locked else ""
        print(
            f"{item.run_id}  selected={item.selected_count} "
            f"failed={item.failure_count} exit={item.exit_code}{mode}{lock}"
        )


def cmd_inspect_run(settings: Settings, args: argparse.Namespace) -> None:
    """Print one run's saved summary."""

    try:
        payload = inspect_run(settings.output_dir, args.run_id)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)
    if args.json:
        _print_json(payload)
        return
    summary = payload["summary"]
    print(f"Run {summary['run_id']} ({summary['date_tz']})")
    print(f"  Conversations: {summary['conversation_count']}")
    print(f"  Selected:      {summary['selected_count']}")
    print(f"  Failed:        {summary['failure_count']}")
    print(f"  Exit code:     {summary['exit_code']}")
    print(f"  Directory:     {summary['run_root']}")


def cmd_prune_runs(settings: Settings, args: argparse.Namespace) -> None:
    """Plan or apply pruning of old run directories."""

    try:
        result = prune_runs(
            settings.output_dir,
            keep_last=args.keep_last,
            max_age_days=args.max_age_days,
            dry_run=not args.yes,
        )
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)
    if args.json:
        _print_json(result)
        return
    verb = "Would delete" if result["dry_run"] else "Deleted"
    count = result["planned_count"] if result["dry_run"] else result["deleted_count"]
    print(f"{verb} {count} of {result['total_runs']} runs under {result['runs_root']}")
    if result["skipped_locked_count"]:
        print(f"  Skipped {result['skipped_locked_count']} locked run(s)")
    if result["error_count"]:
        print(f"  {result['error_count']} deletion error(s)")
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_yaml(args.config)
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(EXIT_CONFIGURATION_ERROR)
    configure_logging(args.log_level or settings.log_level)

    if args.command == "info":
        cmd_info(settings)
    elif args.command == "run":
        cmd_run(settings, args)
    elif args.command == "list-runs":
        cmd_list_runs(settings, args)
    elif args.command == "inspect-run":
        cmd_inspect_run(settings, args)
    elif args.command == "prune-runs":
        cmd_prune_runs(settings, args)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
