# promptpacker/scanner.py
"""
Filesystem collaborators: the directory walker, binary sniffing, the content
reader used by the prompt assembler and the clipboard sink.
"""

import asyncio
import fnmatch
import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import gitignore_parser
import pyperclip

from .config import (
    BINARY_EXTENSIONS,
    BINARY_SAMPLE_SIZE,
    BINARY_THRESHOLD_PERCENT,
    CHARS_PER_TOKEN,
    DEFAULT_IGNORES,
    MAX_FILE_SIZE_BYTES,
)
from .models import ClipboardResult, FileDescriptor, ReadResult, ScanResult, ScanStats, SkipReason

logger = logging.getLogger(__name__)


class ScanError(Exception):
    """The requested root cannot be scanned."""


@dataclass(frozen=True)
class BinaryDetectionOptions:
    max_size_bytes: int = MAX_FILE_SIZE_BYTES
    check_content: bool = True
    check_extension: bool = True
    sample_size: int = BINARY_SAMPLE_SIZE
    binary_threshold: int = BINARY_THRESHOLD_PERCENT


DEFAULT_BINARY_OPTIONS = BinaryDetectionOptions()


@dataclass(frozen=True)
class BinaryCheck:
    is_binary: bool
    reason: Optional[SkipReason] = None
    details: Optional[str] = None


# --- Helper Functions ---
def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def is_binary_by_extension(filepath: Path) -> bool:
    return filepath.suffix.lower() in BINARY_EXTENSIONS


def _is_text_byte(b: int) -> bool:
    return b in (9, 10, 12, 13) or 32 <= b <= 126 or b >= 128


def sample_is_binary(sample: bytes, threshold_percent: int = BINARY_THRESHOLD_PERCENT) -> bool:
    if not sample:
        return False
    if b"\0" in sample:
        return True
    non_text = sum(1 for b in sample if not _is_text_byte(b))
    return non_text / len(sample) * 100 > threshold_percent


def detect_binary(filepath: Path, options: BinaryDetectionOptions = DEFAULT_BINARY_OPTIONS) -> BinaryCheck:
    if options.check_extension and is_binary_by_extension(filepath):
        return BinaryCheck(True, SkipReason.EXTENSION, f"Binary extension {filepath.suffix.lower()}")
    try:
        size = filepath.stat().st_size
    except OSError as e:
        return BinaryCheck(True, SkipReason.ERROR, str(e))
    if size > options.max_size_bytes:
        return BinaryCheck(True, SkipReason.SIZE, f"File too large ({size} bytes)")
    if options.check_content:
        try:
            with open(filepath, "rb") as f:
                sample = f.read(options.sample_size)
        except OSError as e:
            return BinaryCheck(True, SkipReason.ERROR, str(e))
        if sample_is_binary(sample, options.binary_threshold):
            return BinaryCheck(True, SkipReason.CONTENT, "Binary content detected")
    return BinaryCheck(False)


class IgnoreMatcher:
    """Default ignore patterns plus every .gitignore between the root and a path."""

    def __init__(self, root: Path, extra_patterns: Optional[List[str]] = None):
        self.root = root.resolve()
        self.patterns = DEFAULT_IGNORES + (extra_patterns or [])
        self._gitignore_matchers: Dict[Path, Callable[[str], bool]] = {}

    def _gitignore_for(self, directory: Path) -> Callable[[str], bool]:
        matcher = self._gitignore_matchers.get(directory)
        if matcher is None:
            gf_path = directory / ".gitignore"
            matcher = lambda p: False
            if gf_path.is_file():
                try:
                    matcher = gitignore_parser.parse_gitignore(str(gf_path), base_dir=str(directory))
                except Exception as e:
                    logger.warning("Could not parse %s: %s", gf_path, e)
            self._gitignore_matchers[directory] = matcher
        return matcher

    def is_ignored(self, path: Path, is_dir: bool) -> bool:
        try:
            rel_parts = path.relative_to(self.root).parts
        except ValueError:
            return True

        for pattern in self.patterns:
            if pattern.endswith("/"):
                dir_name = pattern.rstrip("/")
                if dir_name in rel_parts[:-1] or (is_dir and path.name == dir_name):
                    return True
            elif fnmatch.fnmatch(path.name, pattern):
                return True

        # Outermost .gitignore first, then each directory down to the parent.
        directory = self.root
        dirs_to_check = [directory]
        for part in rel_parts[:-1]:
            directory = directory / part
            dirs_to_check.append(directory)
        for gitignore_dir in dirs_to_check:
            if self._gitignore_for(gitignore_dir)(str(path)):
                return True
        return False


def _describe_file(path: Path, rel: str, options: BinaryDetectionOptions) -> FileDescriptor:
    try:
        size = path.stat().st_size
    except OSError:
        size = 0
    check = detect_binary(path, options)
    if check.is_binary:
        return FileDescriptor(str(path), rel, False, True, check.reason, size, 0)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return FileDescriptor(str(path), rel, False, True, SkipReason.CONTENT, size, 0)
    except OSError as e:
        logger.warning("Error reading file %s: %s", path, e)
        return FileDescriptor(str(path), rel, False, True, SkipReason.ERROR, size, 0)
    return FileDescriptor(str(path), rel, False, False, None, size, estimate_tokens(text))


def scan_directory(
    root: Path,
    ignored_patterns: Optional[List[str]] = None,
    options: BinaryDetectionOptions = DEFAULT_BINARY_OPTIONS,
) -> ScanResult:
    """Walk ``root`` and describe every entry that is not ignored."""
    root = Path(root).resolve()
    if not root.is_dir():
        raise ScanError(f"Not a directory: {root}")

    matcher = IgnoreMatcher(root, ignored_patterns)
    files: List[FileDescriptor] = []

    def on_error(e: OSError) -> None:
        logger.warning("OS Error walking %s: %s", e.filename, e)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        current = Path(dirpath)
        dirnames[:] = sorted(d for d in dirnames if not matcher.is_ignored(current / d, True))
        for d in dirnames:
            dir_path = current / d
            files.append(FileDescriptor(str(dir_path), dir_path.relative_to(root).as_posix(), is_directory=True))
        for name in sorted(filenames):
            file_path = current / name
            if matcher.is_ignored(file_path, False):
                continue
            files.append(_describe_file(file_path, file_path.relative_to(root).as_posix(), options))

    plain = [f for f in files if not f.is_directory]
    skipped = [f for f in plain if f.is_skipped]
    stats = ScanStats(
        file_count=len(plain),
        total_size=sum(f.size for f in plain),
        total_tokens=sum(f.token_estimate for f in plain),
        skipped_count=len(skipped),
        binary_count=sum(1 for f in skipped if f.skip_reason in (SkipReason.EXTENSION, SkipReason.CONTENT)),
    )
    logger.info("Scanned %s: %d files, %d skipped", root, stats.file_count, stats.skipped_count)
    return ScanResult(root_path=str(root), files=files, stats=stats)


def read_file_content_sync(filepath: str, options: BinaryDetectionOptions = DEFAULT_BINARY_OPTIONS) -> ReadResult:
    path = Path(filepath)
    if not path.is_file():
        return ReadResult(content="", is_skipped=True, error="File does not exist", skip_reason=SkipReason.ERROR)
    check = detect_binary(path, options)
    if check.is_binary:
        return ReadResult(
            content="",
            is_skipped=True,
            error=check.details or "File is binary or too large",
            skip_reason=check.reason,
        )
    try:
        return ReadResult(content=path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Error reading file %s: %s", path, e)
        return ReadResult(content="", is_skipped=True, error=str(e), skip_reason=SkipReason.ERROR)


async def read_file_content(filepath: str) -> ReadResult:
    return await asyncio.to_thread(read_file_content_sync, filepath)


def write_to_clipboard(payload: str) -> ClipboardResult:
    try:
        pyperclip.copy(payload)
    except pyperclip.PyperclipException as e:
        logger.error("Clipboard copy error: %s", e)
        return ClipboardResult(success=False, error=f"Clipboard error: {e}")
    return ClipboardResult(success=True)
