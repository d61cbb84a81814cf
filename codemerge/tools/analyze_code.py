"""
analyze_code: line and function counts for the files under a path.

Function counting is a regex heuristic per language family, not parsing.
"""

import os
import re
import stat
import time
from typing import Dict, List, Optional

from codemerge.core.config import ReadOptions
from codemerge.core.errors import PathNotFileError
from codemerge.core.tree_cache import cached_list_files
from codemerge.tools.context import ToolContext, filter_options_from_params, resolve_target
from codemerge.utils import get_logger

logger = get_logger("analyze-code")

TOOL_NAME = "analyze_code"

LANGUAGE_EXTENSIONS: Dict[str, List[str]] = {
    'javascript': ['.js', '.jsx', '.mjs'],
    'typescript': ['.ts', '.tsx'],
    'python': ['.py', '.pyw'],
    'java': ['.java'],
    'c': ['.c', '.h'],
    'cpp': ['.cpp', '.hpp', '.cc', '.hh', '.cxx', '.hxx'],
    'csharp': ['.cs'],
    'go': ['.go'],
    'ruby': ['.rb'],
    'php': ['.php'],
    'swift': ['.swift'],
    'rust': ['.rs'],
    'html': ['.html', '.htm'],
    'css': ['.css'],
    'json': ['.json'],
}

JS_EXTENSIONS = {'.js', '.jsx', '.ts', '.tsx', '.mjs'}
PYTHON_EXTENSIONS = {'.py', '.pyw'}
JAVA_EXTENSIONS = {'.java'}

JS_FUNCTION_PATTERNS = [
    re.compile(r'function\s+\w+\s*\('),
    re.compile(r'\w+\s*=\s*\([^)]*\)\s*=>'),
    re.compile(r'\w+\s*\([^)]*\)\s*{'),
]
PYTHON_FUNCTION_PATTERN = re.compile(r'def\s+\w+\s*\(')
JAVA_METHOD_PATTERN = re.compile(r'\w+\s+\w+\s*\([^)]*\)\s*{')


def get_extensions_for_language(language: str) -> List[str]:
    """Extensions for a language name; empty for unknown languages"""
    return LANGUAGE_EXTENSIONS.get(language.lower(), [])


def count_functions(code: str, extension: str) -> int:
    """Count function-like declarations in source text"""
    extension = extension.lower()
    if extension in JS_EXTENSIONS:
        return sum(len(pattern.findall(code)) for pattern in JS_FUNCTION_PATTERNS)
    if extension in PYTHON_EXTENSIONS:
        return len(PYTHON_FUNCTION_PATTERN.findall(code))
    if extension in JAVA_EXTENSIONS:
        return len(JAVA_METHOD_PATTERN.findall(code))
    return 0


def _empty_analysis() -> dict:
    return {'totalFiles': 0, 'totalLines': 0, 'totalFunctions': 0, 'fileBreakdown': []}


async def handle_request(params: dict, context: Optional[ToolContext] = None) -> dict:
    """
    Handle an analyze_code request.

    Args:
        params: ``path`` (required), ``language``, ``count_lines`` (default
            True), ``count_functions`` (default True), plus the filter
            parameters accepted by get_file_tree

    Returns:
        {"analysis": {"totalFiles", "totalLines", "totalFunctions", "fileBreakdown"}}
    """
    start_time = time.time()
    context = context or ToolContext()

    language = params.get('language')
    count_lines = params.get('count_lines', True)
    want_functions = params.get('count_functions', True)

    target_path, stat_result = await resolve_target(params)

    if stat.S_ISDIR(stat_result.st_mode):
        root = target_path
        files = await cached_list_files(root, filter_options_from_params(params), context.tree_cache)
    elif stat.S_ISREG(stat_result.st_mode):
        root = target_path.parent
        files = [target_path.name]
    else:
        raise PathNotFileError(f"Path '{params['path']}' is not a file or directory.")

    if language:
        extensions = get_extensions_for_language(language)
        files = [f for f in files if os.path.splitext(f)[1].lower() in extensions]

    if not files:
        logger.info("No files to analyze")
        return {'analysis': _empty_analysis()}

    contents = await context.pipeline().read_all(sorted(files), root, ReadOptions())

    analysis = _empty_analysis()
    analysis['totalFiles'] = len(files)
    for relative_path in sorted(contents):
        content = contents[relative_path]
        file_analysis = {'file': relative_path, 'lines': 0, 'functions': 0}

        if count_lines:
            file_analysis['lines'] = len(content.split('\n'))
            analysis['totalLines'] += file_analysis['lines']

        if want_functions:
            file_analysis['functions'] = count_functions(content, os.path.splitext(relative_path)[1])
            analysis['totalFunctions'] += file_analysis['functions']

        analysis['fileBreakdown'].append(file_analysis)

    logger.info(f"Analyzed {len(contents)} files in {time.time() - start_time:.3f}s")
    return {'analysis': analysis}
