from typing import Iterable, Optional
from pathspec import PathSpec


def build_exclude_spec(exclude_patterns: Optional[Iterable[str]]) -> Optional[PathSpec]:
    """
    Compiles git-style exclusion patterns into a PathSpec.

    Returns None when there is nothing to exclude.
    """
    patterns = [p.strip() for p in (exclude_patterns or []) if p and p.strip()]
    if not patterns:
        return None
    return PathSpec.from_lines("gitwildmatch", patterns)


def is_path_excluded(path: str, exclude_spec: Optional[PathSpec]) -> bool:
    return exclude_spec is not None and exclude_spec.match_file(path)

