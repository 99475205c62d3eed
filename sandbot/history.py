"""In-memory gallery of files sent to the robot."""
from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

PLAYLIST_SUFFIX = ".seq"


@dataclass(frozen=True)
class HistoryEntry:
    file_name: str
    played_at: datetime
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.entry_id,
            "file_name": self.file_name,
            "played_at": self.played_at.isoformat(timespec="seconds"),
        }


class HistoryLedger:
    """Append-only record of plays, newest first.

    Replays of the same file are kept as separate entries; the robot never
    reports when a file finishes, so this only says what was dispatched.
    """

    def __init__(self) -> None:
        self._entries: List[HistoryEntry] = []
        self._lock = threading.Lock()

    def record(self, file_name: str, timestamp: Optional[datetime] = None) -> HistoryEntry:
        if not file_name:
            raise ValueError("file_name is required")
        entry = HistoryEntry(file_name=file_name, played_at=timestamp or datetime.now())
        with self._lock:
            self._entries.insert(0, entry)
        return entry

    @property
    def entries(self) -> List[HistoryEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries)

    def to_playlist(self) -> List[str]:
        return to_playlist(self.entries)


def to_playlist(entries: Iterable[HistoryEntry]) -> List[str]:
    """File names oldest first, the order they were queued in."""
    return [entry.file_name for entry in reversed(list(entries))]


def playlist_filename(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError("playlist name is required")
    return name if name.endswith(PLAYLIST_SUFFIX) else f"{name}{PLAYLIST_SUFFIX}"


def playlist_text(entries: Iterable[HistoryEntry]) -> str:
    return "\n".join(to_playlist(entries))


__all__ = [
    "HistoryEntry",
    "HistoryLedger",
    "PLAYLIST_SUFFIX",
    "to_playlist",
    "playlist_filename",
    "playlist_text",
]
