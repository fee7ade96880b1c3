"""
Line diff between two revisions of a configuration file
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

from ..core.exceptions import ConfigIOError


class DiffLineKind(str, Enum):
    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"


@dataclass
class DiffLine:
    kind: DiffLineKind
    line_number: int
    content: str


@dataclass
class DiffStats:
    unchanged: int = 0
    added: int = 0
    removed: int = 0
    total: int = 0


@dataclass
class DiffResult:
    lines: List[DiffLine] = field(default_factory=list)
    stats: DiffStats = field(default_factory=DiffStats)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "lines": [
                {"kind": line.kind.value, "line_number": line.line_number, "content": line.content}
                for line in self.lines
            ],
            "stats": asdict(self.stats),
        }


def diff(old_content: str, new_content: str) -> DiffResult:
    """
    Compare two texts line by line at equal positions.

    This is a positional alignment, not a minimal (LCS) diff: a changed line
    is reported as a removal immediately followed by an addition at the same
    line number, and an insertion shifts every later line.
    """
    old_lines = old_content.split("\n")
    new_lines = new_content.split("\n")
    result = DiffResult()
    stats = result.stats

    for i in range(max(len(old_lines), len(new_lines))):
        line_number = i + 1
        has_old = i < len(old_lines)
        has_new = i < len(new_lines)

        if not has_old:
            result.lines.append(DiffLine(DiffLineKind.ADDED, line_number, new_lines[i]))
            stats.added += 1
        elif not has_new:
            result.lines.append(DiffLine(DiffLineKind.REMOVED, line_number, old_lines[i]))
            stats.removed += 1
        elif old_lines[i] != new_lines[i]:
            result.lines.append(DiffLine(DiffLineKind.REMOVED, line_number, old_lines[i]))
            result.lines.append(DiffLine(DiffLineKind.ADDED, line_number, new_lines[i]))
            stats.removed += 1
            stats.added += 1
        else:
            result.lines.append(DiffLine(DiffLineKind.UNCHANGED, line_number, old_lines[i]))
            stats.unchanged += 1

    stats.total = stats.unchanged + stats.added + stats.removed
    return result


def diff_files(old_path: str, new_path: str) -> DiffResult:
    """Diff two files on disk"""
    contents = []
    for path in (old_path, new_path):
        try:
            contents.append(Path(path).read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigIOError(f"Failed to read {path}: {e}", details={"path": str(path)}) from e
    return diff(contents[0], contents[1])
