from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Callable, List, Optional, Sequence

from rich.console import Console

from .config import OpenTarget, ReviewConfig, ReviewState, TimestampField
from .vault import Document, list_documents
from .workspace import SurfaceKind, Workspace

logger = logging.getLogger(__name__)

console = Console()


@dataclass
class ReviewResult:
    opened: int
    documents: List[Document]
    lookback_days: int
    timestamp_field: TimestampField


def review_cutoff(lookback_days: int, now: Optional[datetime] = None) -> datetime:
    """Start of the current local day, minus `lookback_days` days."""
    if lookback_days < 1:
        raise ValueError(f"lookback_days must be at least 1, got {lookback_days}")
    if now is None:
        now = datetime.now()
    start_of_day = datetime.combine(now.date(), time.min)
    try:
        return start_of_day - timedelta(days=lookback_days)
    except OverflowError:
        # Window reaches past the earliest representable date: select everything.
        return datetime.min


def select_recent(
    documents: Sequence[Document],
    lookback_days: int,
    timestamp_field: TimestampField,
    now: Optional[datetime] = None,
) -> List[Document]:
    """
    Documents whose chosen timestamp falls strictly after the cutoff,
    most recent first. Equal timestamps keep their listing order.
    """
    cutoff = review_cutoff(lookback_days, now)
    field = TimestampField(timestamp_field)

    recent = [d for d in documents if d.timestamp(field) > cutoff]
    recent.sort(key=lambda d: d.timestamp(field), reverse=True)
    return recent


def _open_one(workspace: Workspace, kind: SurfaceKind, document: Document, active: bool) -> None:
    try:
        surface = workspace.create_surface(kind)
        workspace.open_document(surface, document, active=active)
        if active:
            workspace.set_active(surface)
    except Exception as exc:
        logger.warning("Could not open %s: %s", document.path, exc)


def open_all(
    documents: Sequence[Document],
    target: OpenTarget,
    workspace: Workspace,
    state: ReviewState,
    persist: Callable[[], None],
    loop: Optional[asyncio.AbstractEventLoop] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Queue one open per document on the event loop and record the review.

    Opens are queued in the given order and run once control returns to
    the loop; this function does not wait for them. With `new-split` the
    first document goes into a fresh split that becomes active, every
    other document into an inactive tab. The returned count is the number
    of opens queued, not the number that succeeded.
    """
    if loop is None:
        loop = asyncio.get_running_loop()
    target = OpenTarget(target)

    for index, document in enumerate(documents):
        if index == 0 and target == OpenTarget.NEW_SPLIT:
            loop.call_soon(_open_one, workspace, SurfaceKind.SPLIT, document, True)
        else:
            loop.call_soon(_open_one, workspace, SurfaceKind.TAB, document, False)

    reviewed_at = state.mark_reviewed(now)
    try:
        persist()
    except OSError as exc:
        logger.error("Could not save review state: %s", exc)
    logger.debug("Queued %d opens, last review now %s", len(documents), reviewed_at.isoformat())
    return len(documents)


def format_notice(count: int, lookback_days: int, timestamp_field: TimestampField) -> str:
    verb = "modified" if TimestampField(timestamp_field) == TimestampField.MODIFICATION else "created"
    noun = "file" if count == 1 else "files"
    return f"Opening {count} {noun} {verb} in the last {lookback_days} days."


def _print_notice(message: str) -> None:
    console.print(f"[bold green]{message}[/bold green]")


def start_review(
    config: ReviewConfig,
    state: ReviewState,
    workspace: Workspace,
    persist: Callable[[], None],
    documents: Optional[Sequence[Document]] = None,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    notify: Optional[Callable[[str], None]] = None,
    now: Optional[datetime] = None,
) -> ReviewResult:
    if documents is None:
        documents = list_documents(config.vault_dir_resolved, config.extensions)
    if notify is None:
        notify = _print_notice

    selected = select_recent(documents, config.lookback_days, config.timestamp_field, now=now)
    notify(format_notice(len(selected), config.lookback_days, config.timestamp_field))

    opened = open_all(selected, config.open_target, workspace, state, persist, loop=loop, now=now)
    return ReviewResult(
        opened=opened,
        documents=selected,
        lookback_days=config.lookback_days,
        timestamp_field=config.timestamp_field,
    )


__all__ = [
    "ReviewResult",
    "format_notice",
    "open_all",
    "review_cutoff",
    "select_recent",
    "start_review",
]
