# promptpacker/prompt.py
"""
Builds the prompt payload from a selection.

Files are read one at a time, in relative-path order, through whatever content
reader the caller injects. The payload, the token total and the progress
percentages are therefore reproducible for identical input.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Union

from .config import MAX_TOKEN_LIMIT
from .formatting import DEFAULT_PROMPT_OPTIONS, TreeFormatOptions, generate_file_map
from .models import ClipboardResult, FileDescriptor, ReadResult
from .stats import format_number, get_selected_files

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssembleProgress:
    current: int
    total: int
    file_name: str
    percentage: int


@dataclass(frozen=True)
class AssembleResult:
    payload: str
    success: bool
    tokens_used: int
    token_cap_exceeded: bool
    processed_count: int
    total_count: int
    error: Optional[str] = None
    warning: Optional[str] = None


@dataclass(frozen=True)
class CopyResult:
    success: bool
    tokens_used: int
    processed_count: int
    total_count: int
    token_cap_exceeded: bool = False
    error: Optional[str] = None
    warning: Optional[str] = None


ContentReader = Callable[[str], Union[ReadResult, Awaitable[ReadResult]]]
ClipboardSink = Callable[[str], Union[ClipboardResult, Awaitable[ClipboardResult]]]
ProgressCallback = Callable[[AssembleProgress], Any]


async def _resolve(value):
    if inspect.isawaitable(value):
        return await value
    return value


def file_contents_block(relative_path: str, content: str) -> str:
    return f'<file_contents path="{relative_path}">\n{content}\n</file_contents>\n\n'


def token_cap_notice(token_cap: int) -> str:
    return f"Token limit of {format_number(token_cap)} exceeded. Some files were omitted."


async def assemble(
    selected_files: List[FileDescriptor],
    root_label: Optional[str],
    all_files: Optional[List[FileDescriptor]],
    options: TreeFormatOptions,
    content_reader: ContentReader,
    token_cap: int = MAX_TOKEN_LIMIT,
    on_progress: Optional[ProgressCallback] = None,
    log: Optional[logging.Logger] = None,
) -> AssembleResult:
    """
    Assemble the prompt for ``selected_files``.

    Reaching the token cap stops the run before the file that would overflow
    it; that is reported through ``token_cap_exceeded`` and ``warning`` and does
    not count as a failure. Unreadable files are reported in ``error`` and make
    ``success`` false but do not stop the run. Exceptions raised by the reader
    are not caught here.
    """
    log = log or logger
    selected_files = list(selected_files)
    file_map = generate_file_map(selected_files, root_label, all_files, options or DEFAULT_PROMPT_OPTIONS)
    parts = [f"<file_map>\n{file_map}</file_map>\n\n"]

    to_process = get_selected_files(selected_files)
    total = len(to_process)
    tokens_used = 0
    processed = 0
    cap_exceeded = False
    warning: Optional[str] = None
    errors: List[str] = []

    for file in to_process:
        if tokens_used + file.token_estimate > token_cap:
            cap_exceeded = True
            warning = token_cap_notice(token_cap)
            log.info("Token cap %d reached before %s, stopping", token_cap, file.relative_path)
            break

        processed += 1
        if on_progress is not None:
            await _resolve(on_progress(AssembleProgress(
                current=processed,
                total=total,
                file_name=file.relative_path,
                percentage=round(processed / total * 100),
            )))

        result: ReadResult = await _resolve(content_reader(file.path))
        if result.is_skipped or result.content is None:
            message = f"Skipped {file.relative_path}: {result.error or 'File is binary or too large'}"
            log.warning(message)
            errors.append(message)
            continue

        parts.append(file_contents_block(file.relative_path, result.content))
        tokens_used += file.token_estimate

    return AssembleResult(
        payload="".join(parts),
        success=not errors,
        tokens_used=tokens_used,
        token_cap_exceeded=cap_exceeded,
        processed_count=processed,
        total_count=total,
        error="\n".join(errors) if errors else None,
        warning=warning,
    )


async def copy_prompt_to_clipboard(
    selected_files: List[FileDescriptor],
    root_label: Optional[str],
    all_files: Optional[List[FileDescriptor]],
    options: TreeFormatOptions,
    content_reader: ContentReader,
    clipboard_sink: ClipboardSink,
    token_cap: int = MAX_TOKEN_LIMIT,
    on_progress: Optional[ProgressCallback] = None,
    log: Optional[logging.Logger] = None,
) -> CopyResult:
    """Assemble and copy. A run cut short by the token cap still counts as a successful copy."""
    log = log or logger
    try:
        result = await assemble(
            selected_files, root_label, all_files, options,
            content_reader, token_cap, on_progress, log,
        )
    except Exception as e:
        log.exception("Unexpected error while assembling prompt")
        return CopyResult(
            success=False,
            tokens_used=0,
            processed_count=0,
            total_count=len(get_selected_files(selected_files)),
            error=f"Unexpected error while generating the prompt: {e}",
        )

    if not result.success:
        return CopyResult(
            success=False,
            tokens_used=result.tokens_used,
            processed_count=result.processed_count,
            total_count=result.total_count,
            token_cap_exceeded=result.token_cap_exceeded,
            error=result.error,
            warning=result.warning,
        )

    sink_result: ClipboardResult = await _resolve(clipboard_sink(result.payload))
    if not sink_result.success:
        return CopyResult(
            success=False,
            tokens_used=result.tokens_used,
            processed_count=result.processed_count,
            total_count=result.total_count,
            token_cap_exceeded=result.token_cap_exceeded,
            error=sink_result.error or "Failed to copy to clipboard",
            warning=result.warning,
        )

    return CopyResult(
        success=True,
        tokens_used=result.tokens_used,
        processed_count=result.processed_count,
        total_count=result.total_count,
        token_cap_exceeded=result.token_cap_exceeded,
        warning=result.warning,
    )
