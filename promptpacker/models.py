# promptpacker/models.py

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class CheckState(str, Enum):
    UNCHECKED = "unchecked"
    CHECKED = "checked"
    INDETERMINATE = "indeterminate"


class SkipReason(str, Enum):
    EXTENSION = "extension"
    CONTENT = "content"
    SIZE = "size"
    IGNORED = "ignored"
    ERROR = "error"


@dataclass(frozen=True)
class FileDescriptor:
    """One filesystem entry as reported by a directory scan."""
    path: str
    relative_path: str
    is_directory: bool = False
    is_skipped: bool = False
    skip_reason: Optional[SkipReason] = None
    size: int = 0
    token_estimate: int = 0


@dataclass(frozen=True)
class TreeNode:
    """A descriptor placed in the hierarchy. Parents are referenced by id only."""
    id: str
    parent_id: Optional[str]
    level: int
    name: str
    path: str
    relative_path: str
    is_directory: bool
    is_skipped: bool
    skip_reason: Optional[SkipReason]
    size: int
    token_estimate: int

    def to_descriptor(self) -> FileDescriptor:
        return FileDescriptor(
            path=self.path,
            relative_path=self.relative_path,
            is_directory=self.is_directory,
            is_skipped=self.is_skipped,
            skip_reason=self.skip_reason,
            size=self.size,
            token_estimate=self.token_estimate,
        )


@dataclass(frozen=True)
class ScanStats:
    file_count: int = 0
    total_size: int = 0
    total_tokens: int = 0
    skipped_count: int = 0
    binary_count: int = 0


@dataclass(frozen=True)
class ScanResult:
    root_path: str
    files: List[FileDescriptor] = field(default_factory=list)
    stats: ScanStats = field(default_factory=ScanStats)


@dataclass(frozen=True)
class ReadResult:
    """What a content reader hands back for one file."""
    content: Optional[str] = None
    is_skipped: bool = False
    error: Optional[str] = None
    skip_reason: Optional[SkipReason] = None


@dataclass(frozen=True)
class ClipboardResult:
    success: bool
    error: Optional[str] = None
