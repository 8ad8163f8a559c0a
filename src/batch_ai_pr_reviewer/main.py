# src/batch_ai_pr_reviewer/main.py
import os
import sys
import asyncio
import logging
from typing import Dict, List, Optional
from dotenv import load_dotenv # For local development using .env file

from . import __version__
from .plugin_config import load_plugin_config, PluginConfig, REVIEW_MODE_PER_FILE, DEFAULT_LOG_LEVEL
from .event import load_event, PullRequestEvent, ACTION_OPENED
from .llm_client import LLMClient, setup_litellm_provider_env
from .scm_client import GitHubClient
from .diff_parser import parse_diff_text
from .chunk_indexer import index_chunks
from .prompt_builder import build_review_prompt
from .response_validator import ResponseValidator
from .review_schema import ChunkReview
from .comment_mapper import map_reviews_to_comments
from .models import IndexedChunk, PRDetails

# Global logger for the package
logger = logging.getLogger("batch_ai_pr_reviewer")


def setup_logging(log_level_str: str):
    """Configures basic logging for the reviewer."""
    numeric_level = getattr(logging, log_level_str.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        logger.warning(f"Invalid log level '{log_level_str}'. Defaulting to INFO.")

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    # LiteLLM is chatty at INFO
    logging.getLogger("LiteLLM").setLevel(max(numeric_level, logging.WARNING))


def validate_config(config: PluginConfig) -> bool:
    """Validate that all required configuration is present."""
    required_vars = ["llm_model", "scm_token"]
    missing = [var for var in required_vars if not getattr(config, var, None)]
    if missing:
        logger.error(f"Missing required configuration: {missing}")
        return False
    return True


def group_chunks_by_file(chunks: List[IndexedChunk]) -> List[List[IndexedChunk]]:
    """Groups chunks by file path, keeping file order and global chunk indices."""
    groups: Dict[str, List[IndexedChunk]] = {}
    for chunk in chunks:
        groups.setdefault(chunk.file_path, []).append(chunk)
    return list(groups.values())


async def review_chunks(pr_details: PRDetails, chunks: List[IndexedChunk], llm_client: LLMClient,
                        validator: ResponseValidator) -> List[ChunkReview]:
    """Runs one prompt -> primary call -> correction pass over a set of chunks."""
    prompt = build_review_prompt(pr_details.title, pr_details.description, chunks)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Review prompt (first 2000 chars):\n{prompt[:2000]}")

    raw_output = await llm_client.complete(prompt)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Raw review output (first 2000 chars): {(raw_output or '')[:2000]}")
    return await validator.validate(raw_output)


async def fetch_diff(event: PullRequestEvent, scm_client: GitHubClient) -> Optional[str]:
    if event.action == ACTION_OPENED:
        logger.info(f"Fetching full diff for opened PR #{event.pull_number}...")
        return await scm_client.get_pr_diff(event)

    if not (event.before_sha and event.after_sha):
        logger.warning(f"Missing before/after commits for synchronize event on PR #{event.pull_number}.")
        return None
    if event.before_sha == event.after_sha:
        logger.info(f"Before SHA is same as after SHA ({event.after_sha}). No changes to review.")
        return None
    logger.info(f"Fetching diff for synchronized PR #{event.pull_number} (Base: {event.before_sha}, Head: {event.after_sha})...")
    return await scm_client.compare_commits_diff(event)


async def review_pr(config: PluginConfig, event: PullRequestEvent, scm_client: GitHubClient,
                    llm_client: LLMClient) -> bool:
    """
    Main Pull Request review process.

    Stages run in strict order: diff -> chunks -> model review -> comments -> one
    review submission. Diff retrieval, diff parsing and submission failures raise;
    model failures degrade to an empty review.
    """
    if not event.is_reviewable:
        logger.info(f"Unsupported event action '{event.action}'. Nothing to review.")
        return True

    pr_details = await scm_client.get_pr_details(event)
    if pr_details is None:
        logger.warning(f"Proceeding without PR details for PR #{event.pull_number}.")
        pr_details = PRDetails(title=event.title or "", description="")

    diff_text = await fetch_diff(event, scm_client)
    if not diff_text:
        logger.warning("No diff found. Skipping review.")
        return True

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Retrieved diff text (first 1000 chars):\n{diff_text[:1000]}")

    parsed_files = parse_diff_text(diff_text, lenient=config.lenient_diff_parsing)
    chunks = index_chunks(parsed_files, config.exclude_patterns)
    if not chunks:
        logger.info("No chunks to analyze after excluding patterns.")
        return True

    validator = ResponseValidator(llm_client)
    if config.review_mode == REVIEW_MODE_PER_FILE:
        groups = group_chunks_by_file(chunks)
        logger.info(f"Reviewing {len(chunks)} chunks as {len(groups)} per-file requests.")
        results = await asyncio.gather(*(review_chunks(pr_details, group, llm_client, validator) for group in groups))
        # A per-file answer may only address the chunks it was shown
        chunk_reviews = []
        for group, result in zip(groups, results):
            shown = {chunk.chunk_index for chunk in group}
            chunk_reviews.extend(chunk_review for chunk_review in result if chunk_review.chunk_index in shown)
    else:
        logger.info(f"Reviewing {len(chunks)} chunks in a single request.")
        chunk_reviews = await review_chunks(pr_details, chunks, llm_client, validator)

    comments = map_reviews_to_comments(chunks, chunk_reviews)
    if not comments:
        logger.info("No review comments generated for this pull request.")
        return True

    await scm_client.create_review(event, comments)
    return True


async def async_main() -> int:
    """
    Asynchronous main function to orchestrate the reviewer.
    """
    try:
        config = load_plugin_config()
    except Exception as e:
        setup_logging(DEFAULT_LOG_LEVEL)
        logger.critical(f"Failed to load configuration: {e}", exc_info=True)
        return 1
    setup_logging(config.log_level) # Configure logging early

    logger.info("Starting AI PR Reviewer...")
    logger.info(f"Version: {__version__}")

    if not validate_config(config):
        logger.critical("Configuration validation failed. Cannot proceed.")
        return 1

    try:
        setup_litellm_provider_env(config)
        event = load_event(config)
        scm_client = GitHubClient(config)
        llm_client = LLMClient(config)
        success = await review_pr(config, event, scm_client, llm_client)
        logger.info(f"Execution finished. Success: {success}")
        return 0 if success else 1
    except Exception as e:
        logger.critical(f"Unhandled exception in review execution: {e}", exc_info=True)
        return 1


def main_cli() -> int:
    """
    CLI entry point. Loads .env for local dev.
    """
    # In a real CI environment, variables are injected by the system.
    if os.path.exists(".env"):
        logger.info("Found .env file, loading environment variables for local development.")
        load_dotenv(override=True)

    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        return 130 # Standard exit code for Ctrl+C


if __name__ == "__main__":
    sys.exit(main_cli())
