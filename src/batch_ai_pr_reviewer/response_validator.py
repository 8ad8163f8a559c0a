# src/batch_ai_pr_reviewer/response_validator.py
import logging
from typing import List, Optional, TYPE_CHECKING

from .prompt_builder import build_format_prompt
from .review_schema import ChunkReview, REVIEW_RESPONSE_FORMAT, decode_review_payload

if TYPE_CHECKING:
    from .llm_client import LLMClient

logger = logging.getLogger(__name__)


class ResponseValidator:
    """
    Turns the primary model's untrusted text into typed chunk reviews.

    The raw text is re-submitted to a schema-constrained model call whose only job is
    structural conformance. The result is either fully valid or empty.
    """

    def __init__(self, llm_client: 'LLMClient'):
        self.llm_client = llm_client

    async def validate(self, raw_output: Optional[str]) -> List[ChunkReview]:
        if not raw_output or not raw_output.strip():
            logger.info("No raw review output to validate. Skipping format pass.")
            return []

        formatted = await self.llm_client.complete_structured(build_format_prompt(raw_output), REVIEW_RESPONSE_FORMAT)
        if not formatted:
            logger.warning("Format pass returned no output. Discarding review.")
            return []

        result = decode_review_payload(formatted)
        if not result.ok:
            logger.error(f"Formatted review failed schema validation ({result.error}). Discarding review.")
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"Rejected formatted output (first 1000 chars): {formatted[:1000]}")
            return []

        review_count = sum(len(chunk_review.reviews) for chunk_review in result.reviews)
        logger.info(f"Validated {review_count} review items across {len(result.reviews)} chunks.")
        return result.reviews
