from __future__ import annotations

import argparse
import asyncio
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import (
    SETTING_FIELDS,
    OpenTarget,
    ReviewConfig,
    ReviewState,
    SettingError,
    SettingsStore,
    TimestampField,
    update_setting,
)
from .log import setup_logging
from .review import ReviewResult, start_review
from .workspace import CommandWorkspace, ConsoleWorkspace, Workspace

console = Console()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _add_settings_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Path to the settings YAML file (default: $WEEKLY_REVIEW_SETTINGS or weekly_review.yaml).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weekly-review",
        description="Weekly Review - open the notes you created or changed recently.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default: INFO).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    start_parser = subparsers.add_parser(
        "start",
        help="Start a review: open every recent note.",
    )
    _add_settings_option(start_parser)
    start_parser.add_argument(
        "--vault",
        type=Path,
        default=None,
        help="Vault directory to scan for this run (overrides the saved setting).",
    )
    start_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the notes that would be opened without opening them or recording the review.",
    )

    show_parser = subparsers.add_parser(
        "settings",
        help="Show the current settings and when the last review happened.",
    )
    _add_settings_option(show_parser)

    set_parser = subparsers.add_parser(
        "set",
        help="Change one setting and save it.",
    )
    set_parser.add_argument("name", choices=sorted(SETTING_FIELDS), help="Setting to change.")
    set_parser.add_argument(
        "value",
        help=(
            "New value: a positive number of days, "
            f"a mode ({', '.join(f.value for f in TimestampField)}), "
            f"an open target ({', '.join(t.value for t in OpenTarget)}) or a vault path."
        ),
    )
    _add_settings_option(set_parser)

    return parser


async def _review(
    config: ReviewConfig,
    state: ReviewState,
    workspace: Workspace,
    persist: Callable[[], None],
) -> ReviewResult:
    result = start_review(config, state, workspace, persist, loop=asyncio.get_running_loop())
    # Yield once so the queued opens run before the loop is closed.
    await asyncio.sleep(0)
    return result


def run_start(store: SettingsStore, vault: Optional[Path] = None, dry_run: bool = False) -> int:
    config, state = store.load()
    run_config = config.model_copy(update={"vault_dir": vault}) if vault is not None else config

    workspace: Workspace
    if dry_run:
        workspace = ConsoleWorkspace(console)
        state = state.model_copy()
        persist: Callable[[], None] = lambda: None
    else:
        workspace = CommandWorkspace(config.open_command, config.split_command)
        persist = store.saver(config, state)

    try:
        result = asyncio.run(_review(run_config, state, workspace, persist))
    except (FileNotFoundError, NotADirectoryError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1

    if isinstance(workspace, CommandWorkspace):
        workspace.reap()
    if dry_run:
        console.print(f"[yellow]Dry run: {result.opened} notes selected, review not recorded.[/yellow]")
    return 0


def show_settings(store: SettingsStore) -> int:
    config, state = store.load()

    table = Table(title=f"Settings ({escape(str(store.path))})")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("lookback-days", str(config.lookback_days))
    table.add_row("mode", config.timestamp_field.value)
    table.add_row("open-target", config.open_target.value)
    table.add_row("vault", escape(str(config.vault_dir)))
    table.add_row("extensions", escape(", ".join(config.extensions)))
    last = state.last_review_at.strftime("%Y-%m-%d %H:%M") if state.last_review_at else "never"
    table.add_row("last review", last)
    console.print(table)
    return 0


def set_setting(store: SettingsStore, name: str, value: str) -> int:
    config, state = store.load()
    try:
        update_setting(config, name, value)
    except SettingError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 2

    store.save(config, state)
    saved = getattr(config, SETTING_FIELDS[name])
    shown = saved.value if isinstance(saved, Enum) else saved
    console.print(f"[green]Saved[/green] {name} = {escape(str(shown))}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    store = SettingsStore(args.settings)

    if args.command == "start":
        return run_start(store, vault=args.vault, dry_run=args.dry_run)
    if args.command == "settings":
        return show_settings(store)
    if args.command == "set":
        return set_setting(store, args.name, args.value)

    parser.print_help()  # pragma: no cover - defensive
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
