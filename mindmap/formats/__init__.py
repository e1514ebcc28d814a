"""Import / export codecs (YAML documents, CSV edge lists, JSON edges)."""

from mindmap.formats.csv_io import parse_edge_csv, visible_edges_json
from mindmap.formats.yaml_io import (
    dump_yaml,
    graph_data_from_yaml,
    load_graph_file,
    parse_yaml,
    payload_to_yaml_data,
    save_graph_file,
)

__all__ = [
    "parse_edge_csv",
    "visible_edges_json",
    "parse_yaml",
    "dump_yaml",
    "load_graph_file",
    "save_graph_file",
    "graph_data_from_yaml",
    "payload_to_yaml_data",
]
