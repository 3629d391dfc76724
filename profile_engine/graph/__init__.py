"""Graph module: node/link snapshots for the 3D social view."""

from .builder import GraphNode, GraphLink, GraphData, GraphConfig, build_graph

__all__ = ["GraphNode", "GraphLink", "GraphData", "GraphConfig", "build_graph"]
