from __future__ import annotations

import argparse
import json
import re
import sys
from pathlib import Path

from dotenv import load_dotenv

from task_sheet_import.config.loader import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    load_config,
    resolve_config_path,
)
from task_sheet_import.errors import CommitItemFailed, TaskImportError
from task_sheet_import.logging.error_log import ErrorLogBuffer
from task_sheet_import.logging.init import log_summary, set_debug, setup_logging
from task_sheet_import.models.config_models import ImportSettings, NotificationSettings
from task_sheet_import.models.fields import FieldKey
from task_sheet_import.models.notification import NotificationGroup
from task_sheet_import.models.processing_result import CommitResult
from task_sheet_import.models.task import ImportedTask
from task_sheet_import.services.notifications import compose_email
from task_sheet_import.services.pipeline import ImportSession, Stage
from task_sheet_import.services.progress import ProgressTracker
from task_sheet_import.services.summary import render_summary_line

"""CLI entrypoint.

Drives one ImportSession end to end:
- load .env and config/import.yml (or --config / $TASK_IMPORT_CONFIG)
- read a local file or fetch a shared spreadsheet URL
- auto-map columns, apply --map overrides, materialize rows
- create tasks into a JSON Lines file and write one HTML email per recipient

Exit codes: 0 success, 1 fatal (config / source / mapping), 2 partial
(a task creation failed mid-batch).
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

INSPECT_SAMPLE_ROWS = 3


class JsonlTaskSink:
    """create() side: appends one JSON object per task, returns its id."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._next_id = 1
        if path.exists():
            with path.open(encoding="utf-8") as f:
                self._next_id += sum(1 for line in f if line.strip())

    def __call__(self, task: ImportedTask) -> str:
        task_id = f"task-{self._next_id}"
        payload = {"id": task_id, **task.to_payload()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")
        self._next_id += 1
        return task_id


class OutboxNotifier:
    """notify() side: renders the consolidated email into ``outbox/<email>.html``."""

    def __init__(self, outbox: Path, settings_getter) -> None:
        self.outbox = outbox
        self._settings_getter = settings_getter
        self.written: list[Path] = []

    def __call__(self, group: NotificationGroup) -> None:
        settings: NotificationSettings = self._settings_getter()
        email = compose_email(group, settings)
        self.outbox.mkdir(parents=True, exist_ok=True)
        name = re.sub(r"[^A-Za-z0-9@._-]+", "_", email.to)
        path = self.outbox / f"{name}.html"
        path.write_text(f"<!-- To: {email.to} | Subject: {email.subject} -->\n{email.html}", encoding="utf-8")
        self.written.append(path)


def _parse_mapping_override(text: str) -> tuple[FieldKey, int]:
    name, sep, index = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected FIELD=INDEX, got {text!r}")
    try:
        return FieldKey.parse(name.strip()), int(index)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid mapping {text!r}: {e}") from e


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Spreadsheet -> task importer")
    p.add_argument("source", help="Spreadsheet file (.xlsx/.xls/.csv) or shared spreadsheet URL")
    p.add_argument("--config", type=Path, default=None, help="Config YAML (default: config/import.yml)")
    p.add_argument("--tab", default=None, help="Tab id (remote) or sheet name/position (local workbook)")
    p.add_argument(
        "--map",
        dest="overrides",
        action="append",
        type=_parse_mapping_override,
        default=[],
        metavar="FIELD=INDEX",
        help="Override the automatic mapping (repeatable), e.g. --map title=2",
    )
    p.add_argument("--inspect-data", action="store_true", help="Print headers, mapping and first rows then exit")
    p.add_argument("--out", type=Path, default=Path("tasks.jsonl"), help="JSON Lines file receiving created tasks")
    p.add_argument("--outbox", type=Path, default=None, help="Directory receiving one HTML email per recipient")
    p.add_argument("--no-notify", action="store_true", help="Do not send assignment notifications")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _load_settings(explicit: Path | None, logger) -> ImportSettings:
    path = resolve_config_path(explicit)
    if explicit is None and path == DEFAULT_CONFIG_PATH and not path.exists():
        logger.info(f"no config at {path}, using defaults")
        return ImportSettings()
    return load_config(path)


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _sheet_arg(tab: str | None) -> str | int | None:
    if tab is None:
        return None
    return int(tab) if tab.isdigit() else tab


def _load_source(session: ImportSession, args: argparse.Namespace, logger) -> bool:
    """Bring the session to MAPPING. False when a tab choice is still needed."""
    if _is_url(args.source):
        session.load_remote(args.source)
        if session.stage is Stage.TAB_SELECTION:
            if args.tab is None:
                logger.error("the spreadsheet has several tabs; choose one with --tab")
                for tab in session.tabs:
                    print(f"  TAB: id={tab.tab_id} name={tab.name!r} rows={tab.non_empty_row_count}")
                return False
            session.select_tab(args.tab)
        return True

    path = Path(args.source)
    if not path.exists():
        logger.error(f"source not found: {path}")
        return False
    session.load_file(path.read_bytes(), filename=path.name, sheet=_sheet_arg(args.tab))
    return True


def _inspect_data(session: ImportSession) -> int:
    grid = session.grid
    assert grid is not None and session.mapping is not None
    print(f"SOURCE: {grid.source_name} columns={grid.width} rows={len(grid)}")
    for index, header in enumerate(grid.headers):
        owner = session.mapping.column_owner(index)
        print(f"  [{index}] {header!r} -> {owner.value if owner else '-'}")
    for row in grid.sample(INSPECT_SAMPLE_ROWS):
        print("    sample_row=", row)
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not pick up pytest's own argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    load_dotenv(dotenv_path=Path(".env"), override=True)
    if args.debug:
        set_debug(True)

    try:
        settings = _load_settings(args.config, logger)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()
    session = ImportSession(settings=settings, error_log=error_log)
    try:
        return _run(session, args, logger)
    finally:
        log_path = error_log.flush()
        if log_path is not None:
            logger.info(f"error log written: {log_path}")


def _run(session: ImportSession, args: argparse.Namespace, logger) -> int:
    try:
        if not _load_source(session, args, logger):
            return EXIT_FATAL
        for fld, index in args.overrides:
            session.assign_column(fld, index)
    except TaskImportError as e:
        logger.error(f"source: [{e.error_type}] {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(session)

    try:
        tasks = session.confirm_mapping()
    except TaskImportError as e:
        logger.error(f"mapping: [{e.error_type}] {e}")
        return EXIT_FATAL
    grid = session.grid
    assert grid is not None

    if session.proceed() is Stage.CONFIRMING_NOTIFICATION:
        send = not args.no_notify and session.settings.notifications.enabled
        session.confirm_notifications(send=send)
        if send and args.outbox is None:
            for group in session.groups:
                logger.info(f"notification planned to={group.recipient_email} tasks={group.task_count} (no --outbox)")

    notifier = None
    if args.outbox is not None:
        notifier = OutboxNotifier(args.outbox, lambda: session.notification_settings)

    exit_code = EXIT_SUCCESS_ALL
    with ProgressTracker(len(tasks)) as progress:
        try:
            for event in session.commit(JsonlTaskSink(args.out), notifier):
                progress.update(event)
        except CommitItemFailed as e:
            logger.error(f"commit: created {e.created_count}/{len(tasks)}, remaining tasks not created")
            exit_code = EXIT_PARTIAL_FAILURE

    result = session.result or CommitResult(
        created_ids=session.created_ids,
        notified_recipients=(),
        skipped_rows=tuple(session.skipped_rows),
    )
    for email in result.notification_failures:
        logger.warning(f"notification not delivered: {email}")

    summary_line = render_summary_line(len(grid), len(tasks), result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
