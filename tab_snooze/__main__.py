"""CLI entrypoint for the snooze host and one-shot store commands."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from datetime import date, datetime, timezone

from tab_snooze.adapters.config import load_snooze_config
from tab_snooze.application.check_wake import CheckWake
from tab_snooze.application.export_tabs import ExportTabs
from tab_snooze.application.import_tabs import ImportTabs
from tab_snooze.application.snooze_tab import SnoozeTab
from tab_snooze.domain.schedule import INTERVALS, PICK_DATE
from tab_snooze.errors import SnoozeError
from tab_snooze.service.host import SnoozeHost


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Snooze pages until later")
    parser.add_argument("--env-file", default=".env", help="Path to env file")
    parser.add_argument("--data-dir", help="Directory for store.json and session.json")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the wake checker and request endpoint")
    serve.add_argument("--host", help="HTTP bind host")
    serve.add_argument("--port", type=int, help="HTTP bind port")
    serve.add_argument("--check-interval", type=int, help="Seconds between wake checks")
    serve.add_argument(
        "--disable-timers",
        action="store_true",
        help="Do not run periodic wake checks",
    )

    snooze = commands.add_parser("snooze", help="Snooze a URL")
    snooze.add_argument("url")
    when = snooze.add_mutually_exclusive_group(required=True)
    when.add_argument(
        "--when",
        choices=[name for name in INTERVALS if name != PICK_DATE],
        help="Named interval",
    )
    when.add_argument("--at", help="ISO date or datetime to wake at")
    snooze.add_argument("--title", help="Title shown in listings")
    snooze.add_argument("--group", help="Window group id")

    commands.add_parser("list", help="List snoozed items by wake time")
    commands.add_parser("check", help="Run one wake check now")

    export = commands.add_parser("export", help="Export snoozed items to a JSON file")
    export.add_argument("path")

    import_ = commands.add_parser("import", help="Merge a JSON export into the store")
    import_.add_argument("path")

    commands.add_parser("clear", help="Remove every snoozed item")
    return parser.parse_args(argv)


def _parse_when(text: str) -> date | datetime:
    try:
        if "T" in text or " " in text.strip():
            return datetime.fromisoformat(text)
        return date.fromisoformat(text)
    except ValueError as exc:
        raise SystemExit(f"Invalid --at value {text!r}: {exc}") from exc


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    config = load_snooze_config(args.env_file)

    if args.data_dir:
        config = replace(config, data_dir=args.data_dir)
    if args.log_level:
        config = replace(config, log_level=args.log_level.upper())
    if args.command == "serve":
        if args.host:
            config = replace(config, host=args.host)
        if args.port:
            config = replace(config, port=args.port)
        if args.check_interval:
            config = replace(config, check_interval_seconds=max(1, args.check_interval))
        if args.disable_timers:
            config = replace(config, enable_timers=False)
    else:
        config = replace(config, enable_timers=False)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    host = SnoozeHost(config)
    if args.command == "serve":
        try:
            host.start()
        except KeyboardInterrupt:
            pass
        finally:
            host.stop()
        return

    try:
        _run_command(host, args)
    except SnoozeError as exc:
        raise SystemExit(str(exc)) from exc
    finally:
        host.stop()


def _run_command(host: SnoozeHost, args: argparse.Namespace) -> None:
    runtime = host.runtime

    if args.command == "snooze":
        item = SnoozeTab(runtime).execute(
            args.url,
            interval=args.when,
            at=_parse_when(args.at) if args.at else None,
            title=args.title,
            group_id=args.group,
        )
        wake = datetime.fromtimestamp(item.pop_time / 1000, tz=timezone.utc).astimezone()
        print(f"Snoozed {item.url} until {wake.isoformat(timespec='minutes')} ({item.id})")
        return

    if args.command == "list":
        items = runtime.list_snoozed()
        if not items:
            print("Nothing snoozed.")
            return
        for item in items:
            wake = datetime.fromtimestamp(item.pop_time / 1000, tz=timezone.utc).astimezone()
            label = f" {item.title}" if item.title else ""
            group = f" [group {item.group_id}]" if item.group_id else ""
            print(f"{wake.isoformat(timespec='minutes')}  {item.url}{label}{group}  ({item.id})")
        return

    if args.command == "check":
        pending = CheckWake(runtime).execute()
        if pending is None:
            print("Nothing due.")
        else:
            print(f"Notification {pending.notification_id}: {len(pending.ids)} item(s) due")
        return

    if args.command == "export":
        count = ExportTabs(runtime).execute(args.path)
        print(f"Exported {count} item(s) to {args.path}")
        return

    if args.command == "import":
        result = ImportTabs(runtime).execute(args.path)
        if not result.get("success"):
            raise SystemExit(f"Import failed: {result.get('error')}")
        print(f"Imported {result['addedCount']} item(s)")
        return

    if args.command == "clear":
        runtime.clear_all()
        print("Cleared all snoozed items.")
        return


if __name__ == "__main__":
    main()
