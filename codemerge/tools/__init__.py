"""MCP tool handlers"""

from . import analyze_code, file_tree, merge_content
from .compressor import compress_content
from .context import ToolContext

TOOL_HANDLERS = {
    file_tree.TOOL_NAME: file_tree.handle_request,
    merge_content.TOOL_NAME: merge_content.handle_request,
    analyze_code.TOOL_NAME: analyze_code.handle_request,
}

__all__ = ['TOOL_HANDLERS', 'ToolContext', 'compress_content']
