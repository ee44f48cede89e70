"""Node summary utility.

Stateless helpers that aggregate pods and nodes into per-node summaries
for consumers such as schedulers.
"""

from node_lease.cache.bandwidth import get_network_request, parse_bandwidth
from node_lease.cache.node_info import Node, NodeInfo, Pod
from node_lease.cache.util import (
    SUMMARY_COLUMNS,
    create_node_name_to_info_map,
    node_summary_frame,
    nodes_from_documents,
    pods_from_documents,
)

__all__ = [
    "SUMMARY_COLUMNS",
    "Node",
    "NodeInfo",
    "Pod",
    "create_node_name_to_info_map",
    "get_network_request",
    "node_summary_frame",
    "nodes_from_documents",
    "parse_bandwidth",
    "pods_from_documents",
]
