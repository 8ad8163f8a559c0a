# src/batch_ai_pr_reviewer/review_schema.py
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator


class ReviewEntry(BaseModel):
    """A single proposed comment as returned by the model, not yet mapped to the file."""
    model_config = ConfigDict(populate_by_name=True)

    line_ref: str = Field(validation_alias=AliasChoices("lineRef", "lineNumber", "line_ref"))
    side: Optional[Literal["RIGHT", "LEFT"]] = None
    comment: str = Field(validation_alias=AliasChoices("comment", "reviewComment"))

    @field_validator("line_ref", mode="before")
    @classmethod
    def _coerce_line_ref(cls, value: Any) -> Any:
        # Older prompts asked for a bare integer line number
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("side", mode="before")
    @classmethod
    def _normalize_side(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper() or None
        return value


class ChunkReview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chunk_index: int = Field(validation_alias=AliasChoices("chunkIndex", "chunk_index"))
    reviews: List[ReviewEntry] = Field(default_factory=list)


class ReviewEnvelope(BaseModel):
    review: List[ChunkReview] = Field(default_factory=list)


# Machine-readable descriptor handed to the correction model (OpenAI json_schema format)
REVIEW_JSON_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "review": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "chunkIndex": {"type": "integer"},
                    "reviews": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "lineRef": {"type": "string"},
                                "side": {"type": "string", "enum": ["LEFT", "RIGHT"]},
                                "comment": {"type": "string"},
                            },
                            "required": ["lineRef", "side", "comment"],
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["chunkIndex", "reviews"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["review"],
    "additionalProperties": False,
}

REVIEW_RESPONSE_FORMAT: Dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {"name": "review", "strict": True, "schema": REVIEW_JSON_SCHEMA},
}


@dataclass
class DecodeResult:
    reviews: List[ChunkReview] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def decode_review_payload(text: Optional[str]) -> DecodeResult:
    """
    Decodes the correction model's output into typed chunk reviews.

    Accepts either {"review": [...]} or a bare top-level array. Never raises: any
    malformed input yields a DecodeResult carrying an error and no reviews, so a
    partially valid payload is never used.
    """
    if not text or not text.strip():
        return DecodeResult(error="empty payload")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        return DecodeResult(error=f"invalid JSON: {e}")

    if isinstance(payload, list):
        payload = {"review": payload}

    try:
        envelope = ReviewEnvelope.model_validate(payload)
    except ValidationError as e:
        return DecodeResult(error=f"schema mismatch: {e.error_count()} error(s): {e.errors()[:3]}")

    return DecodeResult(reviews=envelope.review)
