import argparse
import sys
from concurrent.futures import wait
from pathlib import Path
from typing import List, Optional

from .core.config import load_config
from .core.console import console
from .core.errors import CallSyncError
from .core.models import UploadStatus
from .session import RecorderSession
from .utils import format_datetime, format_duration, format_file_size, setup_logging

# Logger will be initialized after config is loaded
logger = None

STATUS_ICONS = {
    UploadStatus.PENDING: "○",
    UploadStatus.UPLOADING: "↑",
    UploadStatus.DONE: "✓",
    UploadStatus.FAILED: "✗",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="callsync - collect call recordings and upload them.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress console output except command results.")
    parser.add_argument("-c", "--config", help="Path to config.yaml")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("watch", help="Watch the recording directory and ingest new files")
    subparsers.add_parser("scan", help="List recordings found on local storage")

    add_parser = subparsers.add_parser("add", help="Ingest and upload recordings from the scan")
    add_parser.add_argument("paths", nargs="*", help="Files to add (as shown by 'scan')")
    add_parser.add_argument("--all", action="store_true", help="Add every file not yet added")

    list_parser = subparsers.add_parser("list", help="List stored recordings")
    list_parser.add_argument("--status", choices=[s.value for s in UploadStatus], help="Filter by upload status")

    upload_parser = subparsers.add_parser("upload", help="Upload one recording")
    upload_parser.add_argument("recording_id", help="Recording ID")

    subparsers.add_parser("retry", help="Upload every pending or failed recording")

    delete_parser = subparsers.add_parser("delete", help="Delete a recording (locally and remotely)")
    delete_parser.add_argument("recording_id", help="Recording ID")

    subparsers.add_parser("stats", help="Show today's and pending counts")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    global logger

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    config_context = load_config(args.config)

    debug_mode = args.verbose or config_context.debug
    output_mode = "silent" if args.quiet else "standard"
    console.configure(output_mode=output_mode, debug=debug_mode and not args.quiet)
    logger = setup_logging(debug=debug_mode, output_mode=console.output_mode)

    # Global exception handler
    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = handle_exception

    session = RecorderSession.from_config(config_context)
    try:
        return _dispatch(args, session, config_context)
    except CallSyncError as e:
        console.error_panel(str(e))
        return 1
    finally:
        session.close()


def _dispatch(args, session: RecorderSession, config_context) -> int:
    if args.command == "watch":
        session.orchestrator.recover_stale()
        watcher = session.create_watcher(config_context.watcher)
        if watcher.directory is None:
            console.warning("No call recording directory found. Check 'paths' in config.yaml.")
            return 0
        watcher.run_forever(scan_on_start=config_context.watcher.scan_on_start)

    elif args.command == "scan":
        with console.status("Scanning recordings..."):
            device_files = session.scan()
        if not device_files:
            print("No recordings found.")
            return 0
        print(f"{'':<2} {'Recorded':<12} {'Size':<8} {'Number':<14} {'Contact':<20} {'Type':<9} File")
        print("-" * 100)
        for f in device_files:
            flag = "✓" if f.is_already_added else " "
            print(f"{flag:<2} {format_datetime(f.recorded_at):<12} {format_file_size(f.path.stat().st_size):<8} "
                  f"{f.caller.phone_number:<14} "
                  f"{f.caller.contact_name[:20]:<20} {f.caller.call_type.value:<9} {f.path}")

    elif args.command == "add":
        session.scan()
        if args.all:
            session.select_all()
        else:
            for raw in args.paths:
                session.toggle_select(str(Path(raw).absolute()))
        if not session.selected:
            print("Nothing selected.")
            return 0

        with console.status(f"Adding {len(session.selected)} recording(s)..."):
            futures = session.ingest_and_upload_selected()
            wait(futures)
        _print_results(futures, session.last_message)

    elif args.command == "list":
        recordings = session.recordings
        if args.status:
            recordings = [r for r in recordings if r.upload_status == UploadStatus(args.status)]
        if not recordings:
            print("No recordings found.")
            return 0
        print(f"{'ID':<17} {'':<2} {'Recorded':<12} {'Length':<7} {'Number':<14} {'Contact':<20} File")
        print("-" * 100)
        for r in recordings:
            print(f"{r.id:<17} {STATUS_ICONS[r.upload_status]:<2} {format_datetime(r.recorded_at):<12} "
                  f"{format_duration(r.duration):<7} {r.phone_number:<14} {r.contact_name[:20]:<20} {r.file_name}")

    elif args.command == "upload":
        future = session.upload(args.recording_id)
        if future is None:
            console.error_panel(f"Recording not found: {args.recording_id}")
            return 1
        with console.status("Uploading..."):
            status = future.result()
        console.status_message(session.last_message)
        return 0 if status != UploadStatus.FAILED else 1

    elif args.command == "retry":
        session.orchestrator.recover_stale()
        with console.status("Uploading pending recordings..."):
            futures = session.upload_all_pending()
            wait(futures)
        _print_results(futures, session.last_message)
        print(f"Still pending: {session.pending_count}")

    elif args.command == "delete":
        if not session.delete(args.recording_id):
            console.error_panel(f"Recording not found: {args.recording_id}")
            return 1
        console.status_message(session.last_message)

    elif args.command == "stats":
        print(f"Today:   {session.today_count}")
        print(f"Pending: {session.pending_count}")
        print(f"Total:   {len(session.recordings)}")

    return 0


def _print_results(futures, message: Optional[str] = None) -> None:
    results = [f.result() for f in futures]
    done = sum(1 for r in results if r == UploadStatus.DONE)
    failed = sum(1 for r in results if r == UploadStatus.FAILED)
    if done:
        console.success(f"Uploaded {done} recording(s)")
    if failed:
        console.warning(f"{failed} upload(s) failed")
        console.status_message(message)


if __name__ == "__main__":
    sys.exit(main())
