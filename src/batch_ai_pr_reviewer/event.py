# src/batch_ai_pr_reviewer/event.py
import os
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .plugin_config import PluginConfig

logger = logging.getLogger(__name__)

ACTION_OPENED = "opened"
ACTION_SYNCHRONIZE = "synchronize"
NULL_SHA = "0" * 40


class EventPayloadError(Exception):
    """Raised when the CI event describing the pull request cannot be read."""


@dataclass
class PullRequestEvent:
    action: str
    owner: str
    repo: str
    pull_number: int
    before_sha: Optional[str] = None
    after_sha: Optional[str] = None
    head_sha: Optional[str] = None
    title: Optional[str] = None

    @property
    def is_reviewable(self) -> bool:
        return self.action in (ACTION_OPENED, ACTION_SYNCHRONIZE)


def parse_github_event(payload: Dict[str, Any]) -> PullRequestEvent:
    """Builds a PullRequestEvent from a GitHub Actions pull_request event payload."""
    try:
        repository = payload["repository"]
        pull_request = payload.get("pull_request") or {}
        return PullRequestEvent(
            action=str(payload.get("action") or ""),
            owner=repository["owner"]["login"],
            repo=repository["name"],
            pull_number=int(payload.get("number") or pull_request["number"]),
            before_sha=payload.get("before"),
            after_sha=payload.get("after"),
            head_sha=(pull_request.get("head") or {}).get("sha") or payload.get("after"),
            title=pull_request.get("title"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise EventPayloadError(f"Malformed pull request event payload: missing or invalid {e}") from e


def load_github_event(event_path: str) -> PullRequestEvent:
    try:
        with open(event_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise EventPayloadError(f"Could not read event payload at '{event_path}': {e}") from e
    if not isinstance(payload, dict):
        raise EventPayloadError(f"Event payload at '{event_path}' is not a JSON object.")
    return parse_github_event(payload)


def load_drone_event() -> PullRequestEvent:
    """
    Builds a PullRequestEvent from Drone CI environment variables.

    A `pull_request` build maps to "opened"; a `push` build on a PR maps to
    "synchronize" with DRONE_COMMIT_BEFORE/AFTER as the compared range.
    """
    build_event = os.getenv("DRONE_BUILD_EVENT", "")
    pr_number_str = os.getenv("DRONE_PULL_REQUEST")
    owner = os.getenv("DRONE_REPO_OWNER")
    repo = os.getenv("DRONE_REPO_NAME")

    if not (owner and repo):
        raise EventPayloadError("DRONE_REPO_OWNER/DRONE_REPO_NAME are not set.")
    if not pr_number_str:
        logger.info("Not a PR event (DRONE_PULL_REQUEST not set).")
        return PullRequestEvent(action=build_event, owner=owner, repo=repo, pull_number=0)
    try:
        pull_number = int(pr_number_str or "")
    except ValueError:
        raise EventPayloadError(f"Invalid DRONE_PULL_REQUEST value: {pr_number_str!r}. Not a number.")

    head_sha = os.getenv("DRONE_COMMIT_SHA") or os.getenv("DRONE_COMMIT") or os.getenv("DRONE_COMMIT_AFTER")
    if build_event == "pull_request":
        action = ACTION_OPENED
    elif build_event == "push":
        action = ACTION_SYNCHRONIZE
    else:
        action = build_event

    before_sha = os.getenv("DRONE_COMMIT_BEFORE")
    if before_sha == NULL_SHA:
        before_sha = None

    return PullRequestEvent(
        action=action,
        owner=owner,
        repo=repo,
        pull_number=pull_number,
        before_sha=before_sha,
        after_sha=os.getenv("DRONE_COMMIT_AFTER") or head_sha,
        head_sha=head_sha,
        title=os.getenv("DRONE_PULL_REQUEST_TITLE"),
    )


def load_event(config: 'PluginConfig') -> PullRequestEvent:
    """
    Loads the triggering pull request event, preferring a GitHub Actions payload file
    and falling back to Drone CI variables.
    """
    if config.github_event_path:
        logger.info(f"Loading GitHub event payload from {config.github_event_path}")
        event = load_github_event(config.github_event_path)
    elif os.getenv("DRONE_BUILD_EVENT"):
        logger.info("Loading pull request event from Drone CI environment.")
        event = load_drone_event()
    else:
        raise EventPayloadError("No CI event source found (GITHUB_EVENT_PATH or DRONE_BUILD_EVENT).")

    logger.info(f"Event: action={event.action}, repo={event.owner}/{event.repo}, PR #{event.pull_number}")
    return event
