# src/batch_ai_pr_reviewer/chunk_indexer.py
import logging
from typing import List, Optional, Tuple

from .models import DiffFile, DiffHunk, IndexedChunk, LineOp
from .utils.file_filter import build_exclude_spec, is_path_excluded

logger = logging.getLogger(__name__)


def render_hunk(hunk: DiffHunk) -> str:
    """
    Renders a hunk for the model: the header, then one line per change prefixed with
    the line number on the side the line belongs to, e.g. "12 +    return x".
    """
    rendered = [hunk.header]
    for line in hunk.lines:
        number = line.display_number
        rendered.append(f"{number if number is not None else ''} {LineOp.PREFIXES[line.op]}{line.text}")
    return "\n".join(rendered)


def index_chunks(files: List[DiffFile], exclude_patterns: Optional[List[str]] = None) -> List[IndexedChunk]:
    """
    Flattens the hunks of all reviewable files into one indexed chunk sequence.

    Deleted files never contribute chunks. Files matching any exclusion pattern are
    dropped as a whole. Hunks without added lines are skipped since there is no new
    code in them to review.

    Indices are assigned by position once every reviewable hunk has been collected, in
    file order then hunk order, so they are contiguous and start at 0.
    """
    exclude_spec = build_exclude_spec(exclude_patterns)

    reviewable: List[Tuple[str, DiffHunk]] = []
    for diff_file in files:
        if diff_file.is_deleted:
            logger.info(f"Skipping deleted file: {diff_file.old_path or diff_file.path}")
            continue
        if is_path_excluded(diff_file.path, exclude_spec):
            logger.info(f"Excluding file due to pattern match: {diff_file.path}")
            continue
        if not diff_file.hunks:
            logger.debug(f"Skipping file without hunks (binary or rename only): {diff_file.path}")
            continue

        for hunk in diff_file.hunks:
            if not hunk.has_additions:
                logger.debug(f"Skipping hunk without added lines in {diff_file.path}: {hunk.header}")
                continue
            reviewable.append((diff_file.path, hunk))

    chunks = [
        IndexedChunk(chunk_index=index, file_path=path, rendered_text=render_hunk(hunk), hunk=hunk)
        for index, (path, hunk) in enumerate(reviewable)
    ]
    logger.info(f"Indexed {len(chunks)} chunks from {len(files)} parsed files.")
    return chunks
