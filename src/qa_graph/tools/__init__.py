from qa_graph.tools.registry import ToolRegistry, ToolResult, ToolSpec

__all__ = ["ToolRegistry", "ToolResult", "ToolSpec"]
