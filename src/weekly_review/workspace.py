from __future__ import annotations

import itertools
import logging
import subprocess
import sys
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Sequence

from rich.console import Console
from rich.markup import escape

from .vault import Document

logger = logging.getLogger(__name__)


class SurfaceKind(str, Enum):
    TAB = "tab"
    SPLIT = "split"


@dataclass(frozen=True)
class Surface:
    kind: SurfaceKind
    surface_id: int


class Workspace(Protocol):
    """Where reviewed documents are displayed."""

    def create_surface(self, kind: SurfaceKind) -> Surface: ...

    def open_document(self, surface: Surface, document: Document, active: bool) -> None: ...

    def set_active(self, surface: Surface) -> None: ...


def default_open_command() -> List[str]:
    if sys.platform == "darwin":
        return ["open", "{path}"]
    if sys.platform.startswith("win"):
        return ["cmd", "/c", "start", "", "{path}"]
    return ["xdg-open", "{path}"]


def render_command(template: Sequence[str], document: Document) -> List[str]:
    return [part.replace("{path}", str(document.path)) for part in template]


class CommandWorkspace:
    """
    Opens each document in an external viewer process.

    Launches are fire-and-forget: the process is not waited on. Split surfaces
    use `split_command` when one is configured, tabs use `open_command`.
    """

    def __init__(
        self,
        open_command: Optional[Sequence[str]] = None,
        split_command: Optional[Sequence[str]] = None,
    ) -> None:
        self.open_command = list(open_command) if open_command else default_open_command()
        self.split_command = list(split_command) if split_command else self.open_command
        self.active: Optional[Surface] = None
        self.processes: List[subprocess.Popen] = []
        self._ids = itertools.count(1)

    def create_surface(self, kind: SurfaceKind) -> Surface:
        return Surface(kind=kind, surface_id=next(self._ids))

    def open_document(self, surface: Surface, document: Document, active: bool) -> None:
        template = self.split_command if surface.kind == SurfaceKind.SPLIT else self.open_command
        cmd = render_command(template, document)
        logger.debug("Launching %s (surface %d, active=%s)", cmd, surface.surface_id, active)
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        self.processes.append(proc)

    def set_active(self, surface: Surface) -> None:
        self.active = surface

    def reap(self) -> int:
        """Collect viewers that have exited; returns how many are still running."""
        self.processes = [p for p in self.processes if p.poll() is None]
        return len(self.processes)


class ConsoleWorkspace:
    """Prints what would be opened instead of launching anything."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self.active: Optional[Surface] = None
        self._ids = itertools.count(1)

    def create_surface(self, kind: SurfaceKind) -> Surface:
        return Surface(kind=kind, surface_id=next(self._ids))

    def open_document(self, surface: Surface, document: Document, active: bool) -> None:
        marker = "[bold]*[/bold]" if active else " "
        line = f"{marker} [cyan]{surface.kind.value:<5}[/cyan] {escape(str(document.path))}"
        self.console.print(line, soft_wrap=True)

    def set_active(self, surface: Surface) -> None:
        self.active = surface


__all__ = [
    "CommandWorkspace",
    "ConsoleWorkspace",
    "Surface",
    "SurfaceKind",
    "Workspace",
    "default_open_command",
    "render_command",
]
