#!/usr/bin/env python3
"""
Tests for the get_file_tree, merge_content and analyze_code tool handlers
"""

import pytest

from codemerge.core.errors import InvalidArgumentError, PathNotDirectoryError, PathNotFoundError
from codemerge.tools import ToolContext, analyze_code, file_tree, merge_content
from codemerge.tools.analyze_code import count_functions, get_extensions_for_language
from codemerge.tools.file_tree import build_tree, render_tree


@pytest.fixture
def project(tmp_path):
    root = tmp_path / 'project'
    files = {
        'src/main.py': "def main():\n    pass\n\ndef helper(x):\n    return x\n",
        'src/util/strings.js': "function pad(s) {\n  return s;\n}\nconst trim = (s) => s.trim();\n",
        'README.md': "# Project\n",
        'node_modules/lib/index.js': "module.exports = {};\n",
        'logo.png': "not really a png",
    }
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
    return root


def test_render_tree_layout():
    tree = build_tree(['b.txt', 'src/z.py', 'src/a/x.py', 'a.txt'])

    assert render_tree(tree) == (
        "├── src/\n"
        "│   ├── a/\n"
        "│   │   └── x.py\n"
        "│   └── z.py\n"
        "├── a.txt\n"
        "└── b.txt\n"
    )


@pytest.mark.asyncio
async def test_get_file_tree(project):
    result = await file_tree.handle_request({'path': str(project)}, ToolContext())

    assert result['file_tree'] == (
        "project/\n"
        "├── src/\n"
        "│   ├── util/\n"
        "│   │   └── strings.js\n"
        "│   └── main.py\n"
        "└── README.md\n"
    )


@pytest.mark.asyncio
async def test_get_file_tree_custom_blacklist(project):
    result = await file_tree.handle_request(
        {'path': str(project), 'custom_blacklist': ['util']},
        ToolContext(),
    )
    assert 'strings.js' not in result['file_tree']


@pytest.mark.asyncio
async def test_get_file_tree_errors(project):
    with pytest.raises(InvalidArgumentError):
        await file_tree.handle_request({}, ToolContext())
    with pytest.raises(PathNotFoundError):
        await file_tree.handle_request({'path': str(project / 'missing')})
    with pytest.raises(PathNotDirectoryError):
        await file_tree.handle_request({'path': str(project / 'README.md')})


@pytest.mark.asyncio
async def test_merge_content_directory(project):
    result = await merge_content.handle_request({'path': str(project)}, ToolContext())
    merged = result['merged_content']

    assert merged.startswith("=== File Path: README.md ===\n\n# Project\n")
    assert "=== File Path: src/main.py ===" in merged
    assert "=== File Path: src/util/strings.js ===" in merged
    assert merged.index("src/main.py") < merged.index("src/util/strings.js")
    assert "node_modules" not in merged
    assert "logo.png" not in merged
    assert merged.endswith("=" * 50)


@pytest.mark.asyncio
async def test_merge_content_single_file(project):
    result = await merge_content.handle_request({'path': str(project / 'README.md')})
    assert result['merged_content'] == "=== File Path: README.md ===\n\n# Project\n\n\n" + "=" * 50


@pytest.mark.asyncio
async def test_merge_content_skips_binary_file(project):
    result = await merge_content.handle_request({'path': str(project / 'logo.png')})
    assert result == {'merged_content': ''}


@pytest.mark.asyncio
async def test_merge_content_compress(project):
    result = await merge_content.handle_request(
        {'path': str(project / 'src' / 'util' / 'strings.js'), 'compress': True}
    )
    assert "  return s;" not in result['merged_content']
    assert "return s;" in result['merged_content']


@pytest.mark.asyncio
async def test_analyze_code(project):
    result = await analyze_code.handle_request({'path': str(project)}, ToolContext())
    analysis = result['analysis']

    assert analysis['totalFiles'] == 3
    by_file = {entry['file']: entry for entry in analysis['fileBreakdown']}
    assert by_file['src/main.py'] == {'file': 'src/main.py', 'lines': 6, 'functions': 2}
    # declaration, arrow function, and the declaration again as "pad(s) {"
    assert by_file['src/util/strings.js']['functions'] == 3
    assert analysis['totalLines'] == sum(e['lines'] for e in analysis['fileBreakdown'])


@pytest.mark.asyncio
async def test_analyze_code_language_filter(project):
    result = await analyze_code.handle_request({'path': str(project), 'language': 'Python'})
    assert [e['file'] for e in result['analysis']['fileBreakdown']] == ['src/main.py']

    result = await analyze_code.handle_request({'path': str(project), 'language': 'cobol'})
    assert result['analysis']['totalFiles'] == 0


@pytest.mark.asyncio
async def test_analyze_code_flags(project):
    result = await analyze_code.handle_request(
        {'path': str(project / 'src' / 'main.py'), 'count_lines': False}
    )
    entry = result['analysis']['fileBreakdown'][0]
    assert entry == {'file': 'main.py', 'lines': 0, 'functions': 2}


def test_count_functions_by_language():
    assert count_functions("def a():\n  pass\ndef b(x):\n  pass\n", '.py') == 2
    assert count_functions("public void run() {\n}\n", '.java') == 1
    assert count_functions("fn main() {}", '.rs') == 0
    assert get_extensions_for_language('TypeScript') == ['.ts', '.tsx']


@pytest.mark.asyncio
async def test_tool_context_reuses_tree_cache(project):
    context = ToolContext()
    await file_tree.handle_request({'path': str(project)}, context)
    await file_tree.handle_request({'path': str(project)}, context)

    assert context.tree_cache.get_stats()['hits'] == 1
