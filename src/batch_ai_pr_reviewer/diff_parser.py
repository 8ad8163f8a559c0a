# src/batch_ai_pr_reviewer/diff_parser.py
import logging
from typing import List, Optional
from unidiff import PatchSet, LINE_TYPE_ADDED, LINE_TYPE_REMOVED, LINE_TYPE_CONTEXT
from unidiff.errors import UnidiffParseError
from unidiff.patch import Hunk, PatchedFile

from .models import DiffFile, DiffHunk, ChangedLine, LineOp, DELETED_FILE_PATH

logger = logging.getLogger(__name__)

FILE_SECTION_PREFIX = "diff --git "

_LINE_OPS = {
    LINE_TYPE_ADDED: LineOp.ADD,
    LINE_TYPE_REMOVED: LineOp.REMOVE,
    LINE_TYPE_CONTEXT: LineOp.CONTEXT,
}


class DiffParseError(Exception):
    """Raised when the diff text cannot be parsed as a unified diff."""


def _strip_prefix(path: Optional[str], prefix: str) -> Optional[str]:
    if path and path.startswith(prefix):
        return path[len(prefix):]
    return path


def _convert_hunk(hunk: Hunk) -> DiffHunk:
    header = f"@@ -{hunk.source_start},{hunk.source_length} +{hunk.target_start},{hunk.target_length} @@"
    if hunk.section_header:
        header = f"{header} {hunk.section_header.strip()}"

    lines: List[ChangedLine] = []
    for line in hunk:
        op = _LINE_OPS.get(line.line_type)
        if op is None: # "\ No newline at end of file" and similar markers
            continue
        lines.append(ChangedLine(
            op=op,
            old_line_number=line.source_line_no if op != LineOp.ADD else None,
            new_line_number=line.target_line_no if op != LineOp.REMOVE else None,
            text=line.value.rstrip("\r\n"),
        ))
    return DiffHunk(header=header, old_start=hunk.source_start, new_start=hunk.target_start, lines=lines)


def _convert_file(patched_file: PatchedFile) -> DiffFile:
    old_path = _strip_prefix(patched_file.source_file, "a/")
    if old_path == DELETED_FILE_PATH:
        old_path = None

    if patched_file.is_removed_file:
        new_path = DELETED_FILE_PATH
    else:
        new_path = _strip_prefix(patched_file.target_file, "b/") or patched_file.path

    return DiffFile(
        path=new_path,
        old_path=old_path,
        is_binary=bool(getattr(patched_file, "is_binary_file", False)),
        is_rename=bool(getattr(patched_file, "is_rename", False)),
        hunks=[_convert_hunk(hunk) for hunk in patched_file],
    )


def _split_file_sections(diff_text: str) -> List[str]:
    """Splits a multi-file git diff into one text block per file."""
    sections: List[str] = []
    current: List[str] = []
    for line in diff_text.splitlines(keepends=True):
        if line.startswith(FILE_SECTION_PREFIX) and current:
            sections.append("".join(current))
            current = []
        current.append(line)
    if current:
        sections.append("".join(current))
    return sections


def _parse_patch(diff_text: str) -> List[DiffFile]:
    try:
        patch_set = PatchSet(diff_text)
    except UnidiffParseError as e:
        raise DiffParseError(f"Failed to parse diff text: {e}") from e
    return [_convert_file(patched_file) for patched_file in patch_set]


def parse_diff_text(diff_text: str, lenient: bool = False) -> List[DiffFile]:
    """
    Parses raw diff text (e.g., from git diff or SCM API) into a list of DiffFile objects.

    Args:
        diff_text: The raw diff output as a string.
        lenient: If True, a file section that fails to parse is logged and skipped
            instead of failing the whole diff.

    Returns:
        A list of DiffFile objects, in diff order. Deleted files are kept and carry
        DELETED_FILE_PATH as their path.

    Raises:
        DiffParseError: In strict mode, if any part of the diff is malformed.
    """
    if not diff_text or not diff_text.strip():
        logger.info("Received empty diff text, returning no parsed files.")
        return []

    if not lenient:
        parsed_files = _parse_patch(diff_text)
    else:
        parsed_files = []
        for section in _split_file_sections(diff_text):
            try:
                parsed_files.extend(_parse_patch(section))
            except DiffParseError as e:
                first_line = section.splitlines()[0] if section.strip() else ""
                logger.warning(f"Skipping unparsable file section '{first_line}': {e}")

    logger.info(f"Parsed {len(parsed_files)} files from diff text.")
    return parsed_files
