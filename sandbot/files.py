"""File listings reported by the robot."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

PATTERN_EXTENSIONS = (".thr", ".seq")
PREVIEW_EXTENSION = ".thr"


@dataclass(frozen=True)
class FileDescriptor:
    name: str
    size: int = 0

    @property
    def size_label(self) -> str:
        return format_file_size(self.size)

    @property
    def previewable(self) -> bool:
        return is_previewable(self.name)


@dataclass
class FileSystemListing:
    fs_name: str = ""
    files: List[FileDescriptor] = field(default_factory=list)

    @staticmethod
    def from_json(data: Mapping[str, Any]) -> "FileSystemListing":
        files = []
        for item in data.get("files") or []:
            name = str(item.get("name", ""))
            if not name or name.startswith("."):
                continue
            try:
                size = int(item.get("size", 0))
            except (TypeError, ValueError):
                size = 0
            files.append(FileDescriptor(name=name, size=size))
        return FileSystemListing(fs_name=str(data.get("fsName", "")), files=files)

    def search(self, term: str = "") -> List[FileDescriptor]:
        """Case-insensitive substring match, sorted by name."""
        needle = (term or "").lower()
        matches = [f for f in self.files if needle in f.name.lower()]
        return sorted(matches, key=lambda f: f.name)

    def find(self, name: str) -> FileDescriptor | None:
        for f in self.files:
            if f.name == name:
                return f
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fs_name": self.fs_name,
            "files": [{"name": f.name, "size": f.size, "size_label": f.size_label, "previewable": f.previewable} for f in self.files],
        }


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def is_pattern_file(name: str) -> bool:
    return name.lower().endswith(PATTERN_EXTENSIONS)


def is_previewable(name: str) -> bool:
    """Only polar .thr files can be drawn; .seq playlists just name other files."""
    return name.lower().endswith(PREVIEW_EXTENSION)


__all__ = [
    "FileDescriptor",
    "FileSystemListing",
    "format_file_size",
    "is_pattern_file",
    "is_previewable",
    "PATTERN_EXTENSIONS",
    "PREVIEW_EXTENSION",
]
