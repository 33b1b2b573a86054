"""
Agent tools: hosted tool definitions bound to responders.

Responders consult the product catalogue through the hosted file_search tool
over a configured vector store. Definitions use the Responses API tool format.
"""

from typing import Any


def file_search_tool(vector_store_ids: list[str] | tuple[str, ...], max_num_results: int | None = None) -> dict[str, Any]:
    """Hosted file search over the given vector stores."""
    if not vector_store_ids:
        raise ValueError("file_search requires at least one vector store id")
    tool: dict[str, Any] = {"type": "file_search", "vector_store_ids": list(vector_store_ids)}
    if max_num_results is not None:
        tool["max_num_results"] = max_num_results
    return tool


def web_search_tool(context_size: str = "medium") -> dict[str, Any]:
    """Hosted web search, for responders allowed to look beyond the catalogue."""
    return {"type": "web_search", "search_context_size": context_size}
