"""code-merge: filtered listing and concurrent reading of source trees, served over MCP"""

__version__ = "1.0.0"
