from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Tuple

import pytest

from weekly_review.vault import Document
from weekly_review.workspace import Surface, SurfaceKind

NOW = datetime(2026, 10, 19, 15, 30)


class RecordingWorkspace:
    """Workspace fake that records every call in order."""

    def __init__(self, fail_on: Tuple[str, ...] = ()) -> None:
        self.surfaces: List[Surface] = []
        self.opened: List[Tuple[Surface, Document, bool]] = []
        self.active: List[Surface] = []
        self.fail_on = fail_on

    def create_surface(self, kind: SurfaceKind) -> Surface:
        surface = Surface(kind=kind, surface_id=len(self.surfaces) + 1)
        self.surfaces.append(surface)
        return surface

    def open_document(self, surface: Surface, document: Document, active: bool) -> None:
        if document.path.name in self.fail_on:
            raise RuntimeError(f"cannot open {document.path.name}")
        self.opened.append((surface, document, active))

    def set_active(self, surface: Surface) -> None:
        self.active.append(surface)


def make_doc(name: str, created_days_ago: float, modified_days_ago: float | None = None) -> Document:
    if modified_days_ago is None:
        modified_days_ago = created_days_ago
    return Document(
        path=Path(name),
        created_at=NOW - timedelta(days=created_days_ago),
        modified_at=NOW - timedelta(days=modified_days_ago),
    )


def touch(path: Path, days_ago: float, now: datetime | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"# {path.stem}\n", encoding="utf-8")
    stamp = ((now or datetime.now()) - timedelta(days=days_ago)).timestamp()
    os.utime(path, (stamp, stamp))
    return path


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def workspace() -> RecordingWorkspace:
    return RecordingWorkspace()
