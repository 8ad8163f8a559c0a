# src/batch_ai_pr_reviewer/comment_mapper.py
import logging
from typing import Dict, List, Optional, Tuple

from .models import IndexedChunk, ReviewComment, Side
from .review_schema import ChunkReview, ReviewEntry

logger = logging.getLogger(__name__)


def parse_line_ref(line_ref: object) -> Optional[Tuple[int, Optional[str]]]:
    """
    Parses a model line reference such as "+42", "-7" or "42".

    Returns:
        (line number, sign) where sign is "+", "-" or None, or None if the reference
        is not a positive integer.
    """
    text = str(line_ref).strip()
    sign: Optional[str] = None
    if text[:1] in ("+", "-"):
        sign, text = text[0], text[1:].strip()
    if not text.isdecimal():
        return None
    number = int(text)
    if number <= 0:
        return None
    return number, sign


def resolve_position(chunk: IndexedChunk, entry: ReviewEntry) -> Optional[Tuple[int, str]]:
    """
    Resolves a review entry to an absolute (line, side) pair within its chunk.

    Side defaults to RIGHT when the model did not state one. The line must appear in
    the chunk on that side, so a LEFT comment always carries an old-file number and a
    RIGHT comment a new-file number.
    """
    parsed = parse_line_ref(entry.line_ref)
    if parsed is None:
        logger.debug(f"Unparsable line reference '{entry.line_ref}' in chunk #{chunk.chunk_index}.")
        return None

    line, _ = parsed
    side = entry.side or Side.RIGHT
    if line not in chunk.hunk.line_numbers_for_side(side):
        logger.debug(f"Line {entry.line_ref} ({side}) is not part of chunk #{chunk.chunk_index} in {chunk.file_path}.")
        return None
    return line, side


def map_reviews_to_comments(chunks: List[IndexedChunk], chunk_reviews: List[ChunkReview]) -> List[ReviewComment]:
    """
    Converts validated chunk reviews into comments addressed by file path, line and side.

    Reviews referring to unknown chunks, unknown lines or carrying an empty body are
    dropped one by one; nothing here fails the batch.
    """
    chunks_by_index: Dict[int, IndexedChunk] = {chunk.chunk_index: chunk for chunk in chunks}
    comments: List[ReviewComment] = []
    dropped = 0

    for chunk_review in chunk_reviews:
        chunk = chunks_by_index.get(chunk_review.chunk_index)
        if chunk is None:
            logger.debug(f"Dropping {len(chunk_review.reviews)} reviews for unknown chunk #{chunk_review.chunk_index}.")
            dropped += len(chunk_review.reviews)
            continue

        for entry in chunk_review.reviews:
            body = entry.comment.strip()
            position = resolve_position(chunk, entry)
            if not body or position is None:
                dropped += 1
                continue
            line, side = position
            comments.append(ReviewComment(path=chunk.file_path, line=line, side=side, body=body))

    if dropped:
        logger.info(f"Dropped {dropped} review items that could not be mapped to the diff.")
    logger.info(f"Mapped {len(comments)} review comments.")
    return comments
