from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Sequence

from .config import TimestampField

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    path: Path
    created_at: datetime
    modified_at: datetime

    def timestamp(self, field: TimestampField) -> datetime:
        if field == TimestampField.MODIFICATION:
            return self.modified_at
        return self.created_at

    @classmethod
    def from_path(cls, path: Path) -> "Document":
        st = path.stat()
        # st_birthtime exists on macOS/BSD/Windows; Linux only has st_ctime.
        created = getattr(st, "st_birthtime", st.st_ctime)
        return cls(
            path=path,
            created_at=datetime.fromtimestamp(created),
            modified_at=datetime.fromtimestamp(st.st_mtime),
        )


def iter_files(vault_dir: Path, extensions: Sequence[str]) -> Iterable[Path]:
    suffixes = {e.lower() for e in extensions}
    for path in sorted(vault_dir.rglob("*")):
        # Skip hidden files/directories (.obsidian/, .trash/, .git/ ...)
        if any(part.startswith(".") for part in path.relative_to(vault_dir).parts):
            continue
        if path.is_file() and path.suffix.lower() in suffixes:
            yield path


def list_documents(vault_dir: Path, extensions: Sequence[str] = (".md",)) -> List[Document]:
    """
    Scan a vault directory and return its notes with their timestamps.

    Documents come back in sorted path order, which is also the tie-break
    order for notes sharing a timestamp during selection.
    """
    root = Path(vault_dir).expanduser()
    if not root.exists():
        raise FileNotFoundError(f"Vault directory not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Vault path is not a directory: {root}")

    documents: List[Document] = []
    for path in iter_files(root, extensions):
        try:
            documents.append(Document.from_path(path))
        except OSError as exc:
            # Deleted or unreadable between listing and stat.
            logger.warning("Skipping %s: %s", path, exc)

    logger.info("Scanned %d notes from %s", len(documents), root)
    return documents


__all__ = ["Document", "iter_files", "list_documents"]
