"""SQLAlchemy models."""
from roadmap.models.graph import GraphEdge, GraphNode

__all__ = [
    "GraphEdge",
    "GraphNode",
]
