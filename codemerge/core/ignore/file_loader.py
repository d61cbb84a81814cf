"""
Reads the root .gitignore and sorts its lines into usable patterns and problems.

Content problems (bad patterns, suspicious patterns, an oversized file) are
recorded on the returned IgnoreFileInfo and never raised. I/O errors propagate
so the caller can tell a missing file from an unreadable one.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import pathspec

from .constants import IGNORE_FILENAME, MAX_IGNORE_FILE_SIZE, MAX_PATTERNS_PER_FILE

BROAD_PATTERNS = frozenset({'*', '**', '**/*'})


class LineKind(Enum):
    EMPTY = "empty_lines"
    COMMENT = "comment_lines"
    PATTERN = "pattern_lines"


@dataclass(frozen=True)
class PatternIssue:
    """A problem found on one line; line 0 means the whole file"""
    line: int
    pattern: str
    message: str


@dataclass
class IgnoreFileInfo:
    path: Path
    patterns: List[str] = field(default_factory=list)
    valid_patterns: List[str] = field(default_factory=list)
    errors: List[PatternIssue] = field(default_factory=list)
    warnings: List[PatternIssue] = field(default_factory=list)
    stats: Counter = field(default_factory=Counter)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def classify_line(raw: str) -> Tuple[LineKind, str]:
    """
    Classify one line of a rules file.

    ``\\#`` at the start escapes a literal leading hash, as in git.
    """
    text = raw.strip()
    if not text:
        return LineKind.EMPTY, text
    if text.startswith('#'):
        return LineKind.COMMENT, text
    return LineKind.PATTERN, text


def validate_pattern(pattern: str) -> Tuple[bool, Optional[str]]:
    """
    Compile one pattern on its own to see whether pathspec accepts it.

    Returns:
        (True, None), or (False, reason)
    """
    body = pattern[1:] if pattern.startswith('!') else pattern
    try:
        pathspec.PathSpec.from_lines('gitwildmatch', [body])
    except ValueError as e:
        return False, str(e)
    return True, None


def pattern_warnings(pattern: str) -> Iterator[str]:
    """Yield messages for patterns that compile but probably do not do what was meant"""
    if '\\' in pattern and not pattern.startswith('\\'):
        yield "Pattern contains backslash; paths are matched with forward slashes"
    if pattern in BROAD_PATTERNS:
        yield "Very broad pattern - will exclude every file"
    if pattern.startswith('*.') and '/' in pattern:
        yield "Extension pattern with path separator - this may not work as expected"


class IgnoreFileLoader:
    """Loads a rules file of a given name from a directory"""

    def __init__(self, ignore_filename: str = IGNORE_FILENAME):
        self.ignore_filename = ignore_filename

    def path_for(self, directory: Path) -> Path:
        return Path(directory) / self.ignore_filename

    def load_file(self, file_path: Path) -> IgnoreFileInfo:
        """
        Parse a rules file.

        Args:
            file_path: Rules file to read

        Returns:
            IgnoreFileInfo; ``valid_patterns`` is what a matcher should compile

        Raises:
            FileNotFoundError: The file does not exist
            OSError: The file cannot be read
            UnicodeDecodeError: The file is not valid UTF-8
        """
        info = IgnoreFileInfo(path=file_path)
        for kind in LineKind:
            info.stats[kind.value] = 0

        size = file_path.stat().st_size
        if size > MAX_IGNORE_FILE_SIZE:
            info.errors.append(PatternIssue(
                0, "", f"File too large: {size} bytes (max: {MAX_IGNORE_FILE_SIZE})"))
            return info

        lines = file_path.read_text(encoding='utf-8').splitlines()
        info.stats['total_lines'] = len(lines)

        for line_num, raw in enumerate(lines, 1):
            kind, text = classify_line(raw)
            info.stats[kind.value] += 1
            if kind is not LineKind.PATTERN:
                continue

            info.patterns.append(text)
            ok, reason = validate_pattern(text)
            if ok:
                info.valid_patterns.append(text)
            else:
                info.errors.append(PatternIssue(line_num, text, reason or "Invalid pattern"))

            info.warnings.extend(PatternIssue(line_num, text, message) for message in pattern_warnings(text))

        if len(info.valid_patterns) > MAX_PATTERNS_PER_FILE:
            info.errors.append(PatternIssue(
                0, "", f"Too many patterns: {len(info.valid_patterns)} (max: {MAX_PATTERNS_PER_FILE}), extra ignored"))
            del info.valid_patterns[MAX_PATTERNS_PER_FILE:]

        return info
