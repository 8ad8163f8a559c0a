# src/batch_ai_pr_reviewer/prompt_builder.py
import logging
import importlib.resources # For loading prompts from package data
from functools import lru_cache
from string import Template
from typing import List, Optional

from .models import IndexedChunk

logger = logging.getLogger(__name__)

PROMPTS_PACKAGE = "batch_ai_pr_reviewer.prompts"
REVIEW_PROMPT_FILE = "review_prompt.txt"
FORMAT_PROMPT_FILE = "format_prompt.txt"


@lru_cache(maxsize=None)
def load_prompt_template(file_name: str) -> Template:
    """Loads a prompt template from the packaged prompts directory."""
    template_str = importlib.resources.files(PROMPTS_PACKAGE).joinpath(file_name).read_text(encoding="utf-8")
    logger.debug(f"Prompt template '{file_name}' loaded.")
    return Template(template_str)


def render_chunk_section(chunk: IndexedChunk) -> str:
    return (
        f"-- Chunk #{chunk.chunk_index} (File: {chunk.file_path}) --\n"
        f"```diff\n{chunk.rendered_text}\n```\n"
    )


def build_review_prompt(pr_title: Optional[str], pr_description: Optional[str], chunks: List[IndexedChunk]) -> str:
    """
    Builds the single instruction document sent to the primary model.

    Args:
        pr_title: Title of the pull request.
        pr_description: Body of the pull request.
        chunks: Indexed chunks to embed, each labelled with its index and file path.

    Returns:
        The prompt text.
    """
    chunks_section = "\n".join(render_chunk_section(chunk) for chunk in chunks)
    return load_prompt_template(REVIEW_PROMPT_FILE).substitute(
        pr_title=(pr_title or "").strip() or "N/A",
        pr_description=(pr_description or "").strip() or "N/A",
        chunks_section=chunks_section,
    )


def build_format_prompt(raw_output: str) -> str:
    """Builds the prompt for the structural correction pass over raw model output."""
    return load_prompt_template(FORMAT_PROMPT_FILE).substitute(raw_output=raw_output)
