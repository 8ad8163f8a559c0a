# src/batch_ai_pr_reviewer/models.py
from dataclasses import dataclass, field
from typing import List, Optional, Set, Dict

# unidiff reports the target of a deleted file as /dev/null; we keep the same marker
DELETED_FILE_PATH = "/dev/null"


class LineOp:
    ADD = "add"
    REMOVE = "remove"
    CONTEXT = "context"

    PREFIXES = {ADD: "+", REMOVE: "-", CONTEXT: " "}


class Side:
    RIGHT = "RIGHT" # New (post-change) file numbering
    LEFT = "LEFT" # Old (pre-change) file numbering


@dataclass(frozen=True)
class ChangedLine:
    """
    One line of a hunk. Added lines only carry a new line number, removed lines
    only an old one, context lines carry both.
    """
    op: str
    old_line_number: Optional[int]
    new_line_number: Optional[int]
    text: str

    @property
    def display_number(self) -> Optional[int]:
        """Line number shown to the model: the number of the side the line lives on."""
        if self.op == LineOp.REMOVE:
            return self.old_line_number
        return self.new_line_number if self.new_line_number is not None else self.old_line_number


@dataclass(frozen=True)
class DiffHunk:
    """
    Represents a single hunk (chunk) of changes within a diff file.
    """
    header: str # e.g., "@@ -1,5 +1,6 @@ def main():"
    old_start: int
    new_start: int
    lines: List[ChangedLine] = field(default_factory=list)

    @property
    def has_additions(self) -> bool:
        return any(line.op == LineOp.ADD for line in self.lines)

    @property
    def new_line_numbers(self) -> Set[int]:
        """Lines that can carry a RIGHT side comment (added + context)."""
        return {line.new_line_number for line in self.lines
                if line.op != LineOp.REMOVE and line.new_line_number is not None}

    @property
    def old_line_numbers(self) -> Set[int]:
        """Lines that can carry a LEFT side comment (removed + context)."""
        return {line.old_line_number for line in self.lines
                if line.op != LineOp.ADD and line.old_line_number is not None}

    def line_numbers_for_side(self, side: str) -> Set[int]:
        return self.old_line_numbers if side == Side.LEFT else self.new_line_numbers


@dataclass(frozen=True)
class DiffFile:
    """
    Represents a single file in a diff.
    """
    path: str # Path after changes, DELETED_FILE_PATH for deleted files
    old_path: Optional[str] = None # Path before changes (None for new files)
    is_binary: bool = False
    is_rename: bool = False
    hunks: List[DiffHunk] = field(default_factory=list)

    @property
    def is_deleted(self) -> bool:
        return self.path == DELETED_FILE_PATH


@dataclass(frozen=True)
class IndexedChunk:
    """
    A hunk with its position in the global chunk sequence. The model refers back to
    chunks by `chunk_index`, so indices are never reordered within one run.
    """
    chunk_index: int
    file_path: str
    rendered_text: str
    hunk: DiffHunk


@dataclass
class ReviewComment:
    """
    Represents a single review comment to be posted to the SCM.
    """
    path: str
    line: int # Absolute line number in the file numbering selected by `side`
    side: str
    body: str

    def to_payload(self) -> Dict[str, object]:
        return {"path": self.path, "line": self.line, "side": self.side, "body": self.body}


@dataclass
class PRDetails:
    title: str
    description: str
