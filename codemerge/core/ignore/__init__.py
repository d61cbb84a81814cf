"""
Ignore rule evaluation for code-merge

This module decides which paths are eligible for processing by combining:
- A fixed default blacklist of directory/file names
- An optional caller-supplied blacklist
- A rule for the version-control metadata directory
- Patterns from the root .gitignore file
- A fixed set of binary file extensions
"""

from .constants import (
    IGNORE_FILENAME,
    VCS_DIR_NAME,
    DEFAULT_BLACKLIST,
    BINARY_EXTENSIONS,
)
from .file_loader import IgnoreFileLoader, IgnoreFileInfo
from .rule_engine import (
    IgnorePatternMatcher,
    IgnoreReason,
    IgnoreRuleSet,
    MatchResult,
    build_rule_set,
    load_pattern_matcher,
    normalize_relative_path,
    should_ignore,
)

__all__ = [
    'IGNORE_FILENAME',
    'VCS_DIR_NAME',
    'DEFAULT_BLACKLIST',
    'BINARY_EXTENSIONS',
    'IgnoreFileLoader',
    'IgnoreFileInfo',
    'IgnorePatternMatcher',
    'IgnoreReason',
    'IgnoreRuleSet',
    'MatchResult',
    'build_rule_set',
    'load_pattern_matcher',
    'normalize_relative_path',
    'should_ignore',
]
