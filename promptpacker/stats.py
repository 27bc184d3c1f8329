# promptpacker/stats.py

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .config import MAX_TOKEN_LIMIT
from .models import FileDescriptor


@dataclass(frozen=True)
class ExtensionStats:
    extension: str
    count: int
    size: int
    tokens: int


@dataclass(frozen=True)
class FileStats:
    total_files: int = 0
    total_size: int = 0
    total_tokens: int = 0
    by_extension: List[ExtensionStats] = field(default_factory=list)


def get_selected_files(files: Iterable[FileDescriptor]) -> List[FileDescriptor]:
    """Packable files only (no directories, nothing skipped), sorted by relative path."""
    packable = [f for f in files if not f.is_directory and not f.is_skipped]
    return sorted(packable, key=lambda f: f.relative_path)


def filter_by_extension(files: Iterable[FileDescriptor], extension: str) -> List[FileDescriptor]:
    ext = extension.lower()
    if not ext.startswith("."):
        ext = "." + ext
    return [f for f in files if f.relative_path.lower().endswith(ext)]


def _extension_of(relative_path: str) -> str:
    name = relative_path.rsplit("/", 1)[-1]
    if "." not in name:
        return "unknown"
    return name.rsplit(".", 1)[-1].lower() or "unknown"


def group_by_extension(files: Iterable[FileDescriptor]) -> Dict[str, List[FileDescriptor]]:
    groups: Dict[str, List[FileDescriptor]] = {}
    for f in files:
        if f.is_directory:
            continue
        groups.setdefault(_extension_of(f.relative_path), []).append(f)
    return groups


def get_file_stats(files: List[FileDescriptor]) -> FileStats:
    by_ext = [
        ExtensionStats(
            extension=ext,
            count=len(group),
            size=sum(f.size for f in group),
            tokens=sum(f.token_estimate for f in group),
        )
        for ext, group in group_by_extension(files).items()
    ]
    by_ext.sort(key=lambda s: s.count, reverse=True)
    return FileStats(
        total_files=len(files),
        total_size=sum(f.size for f in files),
        total_tokens=sum(f.token_estimate for f in files),
        by_extension=by_ext,
    )


def get_total_token_count(files: Iterable[FileDescriptor]) -> int:
    return sum(f.token_estimate for f in files)


def is_exceeding_token_limit(files: Iterable[FileDescriptor], limit: int = MAX_TOKEN_LIMIT) -> bool:
    return get_total_token_count(files) > limit


def get_token_usage_percentage(files: Iterable[FileDescriptor], limit: int = MAX_TOKEN_LIMIT) -> float:
    return get_total_token_count(files) / limit * 100


def format_number(num: int) -> str:
    return f"{num:,}"


def format_file_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    if size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
