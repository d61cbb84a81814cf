"""
Whitespace and comment stripping for merged source text.

This is a regex heuristic, not a parser: comment markers inside string
literals are stripped too.
"""

import re

from codemerge.utils import get_logger

logger = get_logger(__name__)

BLOCK_COMMENT_RE = re.compile(r'/\*.*?\*/', re.DOTALL)
# Skip "//" preceded by ":" so URLs survive
LINE_COMMENT_RE = re.compile(r'(?<!:)//.*$', re.MULTILINE)
BLANK_RUN_RE = re.compile(r'(\r?\n\s*){3,}')
LINE_SPLIT_RE = re.compile(r'\r?\n')


def compress_content(code: str) -> str:
    """
    Compress code by removing comments, blank line runs and edge whitespace.

    Returns the input unchanged if compression fails.
    """
    if not code:
        return ''

    try:
        compressed = BLOCK_COMMENT_RE.sub('', code)
        compressed = LINE_COMMENT_RE.sub('', compressed)
        compressed = BLANK_RUN_RE.sub('\n\n', compressed)
        compressed = '\n'.join(line.strip() for line in LINE_SPLIT_RE.split(compressed))
        return compressed.strip()
    except (re.error, RecursionError) as e:
        logger.error(f"Error during content compression: {e}")
        return code
