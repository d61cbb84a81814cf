"""
Rule engine deciding whether a relative path is excluded from processing.

Rules are evaluated in a fixed order and the first positive match wins:

1. VCS directory (first path segment is ``.git``)
2. Custom blacklist (any segment, or the full path verbatim)
3. Default blacklist (any segment, at any depth)
4. Patterns loaded from the root ``.gitignore``
5. Binary file extension

The order is part of the observable contract: ``explain()`` reports which
rule excluded a path.
"""

import posixpath
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Union

import pathspec

from .constants import (
    BINARY_EXTENSIONS,
    DEFAULT_BLACKLIST,
    IGNORE_FILENAME,
    VCS_DIR_NAME,
)
from .file_loader import IgnoreFileLoader
from codemerge.utils import get_logger

logger = get_logger(__name__)


class IgnoreReason(Enum):
    """Which rule excluded a path"""
    NONE = "none"
    VCS_DIR = "vcs_dir"
    CUSTOM_BLACKLIST = "custom_blacklist"
    DEFAULT_BLACKLIST = "default_blacklist"
    IGNORE_FILE = "ignore_file"
    BINARY_EXTENSION = "binary_extension"


@dataclass(frozen=True)
class MatchResult:
    """Result of matching a path against the rule set"""
    should_ignore: bool
    reason: IgnoreReason = IgnoreReason.NONE
    matched: Optional[str] = None


NOT_IGNORED = MatchResult(should_ignore=False)


def normalize_relative_path(path: Union[str, Path]) -> str:
    """Convert a relative path to its canonical forward-slash form."""
    normalized = str(path).replace('\\', '/')
    parts = [part for part in normalized.split('/') if part and part != '.']
    return '/'.join(parts)


class IgnorePatternMatcher:
    """
    Compiled gitignore-style patterns anchored at the directory of their rules file
    """

    def __init__(self, patterns: List[str], base_dir: Path, source_file: Optional[Path] = None):
        self.patterns = list(patterns)
        self.base_dir = Path(base_dir)
        self.source_file = source_file
        self._spec = pathspec.PathSpec.from_lines('gitwildmatch', self.patterns)

    def matches(self, relative_path: str, is_dir: bool = False) -> bool:
        """
        Check a path relative to ``base_dir`` against the patterns.

        Directories are tested with a trailing slash so directory-only
        patterns such as ``build/`` apply to them.
        """
        if not relative_path:
            return False
        candidate = relative_path + '/' if is_dir else relative_path
        return self._spec.match_file(candidate)

    def __len__(self) -> int:
        return len(self.patterns)

    def __repr__(self) -> str:
        return f"IgnorePatternMatcher({len(self.patterns)} patterns from {self.source_file or self.base_dir})"


@dataclass(frozen=True)
class IgnoreRuleSet:
    """
    Immutable set of ignore rules for one traversal.

    When ``exclude_vcs_dir`` is False a VCS directory at the root is also
    exempt from the default blacklist. Nested VCS directories stay excluded.
    """
    default_names: frozenset = DEFAULT_BLACKLIST
    custom_names: frozenset = frozenset()
    exclude_vcs_dir: bool = True
    pattern_matcher: Optional[IgnorePatternMatcher] = None
    binary_extensions: frozenset = BINARY_EXTENSIONS
    vcs_dir_name: str = VCS_DIR_NAME

    def __post_init__(self):
        object.__setattr__(self, 'default_names', frozenset(self.default_names))
        object.__setattr__(
            self,
            'custom_names',
            frozenset(normalize_relative_path(name) for name in self.custom_names if name),
        )

    def explain(self, relative_path: Union[str, Path], is_dir: bool = False) -> MatchResult:
        """
        Evaluate the rules in order and report the first that matches.

        Args:
            relative_path: Path relative to the traversal root
            is_dir: Whether the path names a directory

        Returns:
            MatchResult describing the decision
        """
        normalized = normalize_relative_path(relative_path)
        parts = normalized.split('/') if normalized else []
        if not parts:
            return NOT_IGNORED

        # 1. VCS directory
        if parts[0] == self.vcs_dir_name and self.exclude_vcs_dir:
            return MatchResult(True, IgnoreReason.VCS_DIR, self.vcs_dir_name)

        # 2. Custom blacklist
        if self.custom_names:
            for part in parts:
                if part in self.custom_names:
                    return MatchResult(True, IgnoreReason.CUSTOM_BLACKLIST, part)
            if normalized in self.custom_names:
                return MatchResult(True, IgnoreReason.CUSTOM_BLACKLIST, normalized)

        # 3. Default blacklist
        vcs_root_allowed = parts[0] == self.vcs_dir_name and not self.exclude_vcs_dir
        for index, part in enumerate(parts):
            if index == 0 and vcs_root_allowed:
                continue
            if part in self.default_names:
                return MatchResult(True, IgnoreReason.DEFAULT_BLACKLIST, part)

        # 4. Rules file patterns
        if self.pattern_matcher is not None and self.pattern_matcher.matches(normalized, is_dir):
            return MatchResult(True, IgnoreReason.IGNORE_FILE, normalized)

        # 5. Binary extension
        if not is_dir:
            extension = posixpath.splitext(parts[-1])[1].lower()
            if extension and extension in self.binary_extensions:
                return MatchResult(True, IgnoreReason.BINARY_EXTENSION, extension)

        return NOT_IGNORED

    def should_ignore(self, relative_path: Union[str, Path], is_dir: bool = False) -> bool:
        return self.explain(relative_path, is_dir).should_ignore

    def is_binary_path(self, path: Union[str, Path]) -> bool:
        extension = posixpath.splitext(normalize_relative_path(path))[1].lower()
        return extension in self.binary_extensions


def should_ignore(relative_path: Union[str, Path], rule_set: IgnoreRuleSet, is_dir: bool = False) -> bool:
    """Check a relative path against a rule set"""
    return rule_set.should_ignore(relative_path, is_dir)


def load_pattern_matcher(root: Union[str, Path],
                         loader: Optional[IgnoreFileLoader] = None) -> Optional[IgnorePatternMatcher]:
    """
    Load the pattern matcher from the rules file at the traversal root.

    A missing file is not an error. Any other failure is logged and also
    yields None: read failures never abort traversal.

    Args:
        root: Traversal root directory
        loader: Optional loader (defaults to one for IGNORE_FILENAME)

    Returns:
        Compiled matcher, or None when absent, unreadable or empty
    """
    loader = loader or IgnoreFileLoader()
    root = Path(root)
    ignore_path = loader.path_for(root)

    try:
        info = loader.load_file(ignore_path)
    except FileNotFoundError:
        logger.debug(f"No {loader.ignore_filename} found at {root}")
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Error reading {ignore_path}: {e}")
        return None

    for error in info.errors:
        logger.warning(f"{ignore_path}:{error.line}: {error.message}")
    for warning in info.warnings:
        logger.debug(f"{ignore_path}:{warning.line}: {warning.message}")

    if not info.valid_patterns:
        return None

    logger.debug(f"Loaded {len(info.valid_patterns)} patterns from {ignore_path}")
    return IgnorePatternMatcher(info.valid_patterns, base_dir=root, source_file=ignore_path)


def build_rule_set(root: Union[str, Path],
                   use_ignore_file: bool = True,
                   exclude_vcs_dir: bool = True,
                   custom_blacklist: Optional[Iterable[str]] = None) -> IgnoreRuleSet:
    """
    Build the rule set for one traversal of ``root``.

    Args:
        root: Traversal root directory
        use_ignore_file: Whether to load patterns from ``<root>/.gitignore``
        exclude_vcs_dir: Whether the ``.git`` directory is excluded
        custom_blacklist: Additional names or relative paths to exclude

    Returns:
        IgnoreRuleSet
    """
    matcher = load_pattern_matcher(root) if use_ignore_file else None
    return IgnoreRuleSet(
        custom_names=frozenset(custom_blacklist or ()),
        exclude_vcs_dir=exclude_vcs_dir,
        pattern_matcher=matcher,
    )


__all__ = [
    'IGNORE_FILENAME',
    'IgnorePatternMatcher',
    'IgnoreReason',
    'IgnoreRuleSet',
    'MatchResult',
    'build_rule_set',
    'load_pattern_matcher',
    'normalize_relative_path',
    'should_ignore',
]
