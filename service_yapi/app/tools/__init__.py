"""
MCP tool layer for the YApi service.
"""

from .definitions import TOOL_DEFINITIONS
from .dispatcher import ToolDispatcher, render

__all__ = ["TOOL_DEFINITIONS", "ToolDispatcher", "render"]
