"""Graph model, similarity algorithms and the session graph manager.

Public re-exports so callers can write::

    from mindmap.graph import GraphManager, cosine_similarity
"""

from mindmap.graph.models import Edge, GraphPayload, Node, edge_key
from mindmap.graph.similarity import (
    cluster_nodes,
    compute_similarity_matrix,
    cosine_similarity,
    euclidean_distance,
    find_similar_nodes,
    generate_similarity_edges,
)
from mindmap.graph.hierarchy import (
    HierarchyNode,
    build_dynamic_hierarchy,
    count_nodes,
    hierarchy_to_elements,
    tree_depth,
)
from mindmap.graph.manager import GraphManager

__all__ = [
    "Node",
    "Edge",
    "GraphPayload",
    "edge_key",
    "cosine_similarity",
    "euclidean_distance",
    "find_similar_nodes",
    "compute_similarity_matrix",
    "generate_similarity_edges",
    "cluster_nodes",
    "HierarchyNode",
    "build_dynamic_hierarchy",
    "count_nodes",
    "tree_depth",
    "hierarchy_to_elements",
    "GraphManager",
]
