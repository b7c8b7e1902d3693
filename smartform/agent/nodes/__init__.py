"""
Graph nodes for the SmartForm assistant turn pipeline.

Each node is a focused function that takes AssistantState and returns
a partial state update dict. Nodes communicate through the shared state.
"""

from smartform.agent.nodes.classify import classify_node
from smartform.agent.nodes.extraction import extraction_node
from smartform.agent.nodes.general_chat import general_chat_node
from smartform.agent.nodes.merge import merge_node
from smartform.agent.nodes.respond import respond_node

__all__ = [
    "classify_node",
    "extraction_node",
    "merge_node",
    "general_chat_node",
    "respond_node",
]
