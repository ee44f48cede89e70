"""
Node summary utilities

Pivots pod and node lists into per-node summaries and parses the pod
network bandwidth annotation. These are stateless transformations; the
scheduling logic that consumes the summaries lives elsewhere.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pandas as pd

from node_lease.cache.bandwidth import get_network_request, parse_bandwidth
from node_lease.cache.node_info import Node, NodeInfo, Pod

__all__ = [
    "SUMMARY_COLUMNS",
    "create_node_name_to_info_map",
    "get_network_request",
    "node_summary_frame",
    "nodes_from_documents",
    "parse_bandwidth",
    "pods_from_documents",
]

SUMMARY_COLUMNS = ["node", "uid", "pods", "network_request"]


def _items(document: Any) -> list[dict[str, Any]]:
    """Accept a bare list or a Kubernetes-style ``{"items": [...]}`` list object."""
    if isinstance(document, dict):
        document = document.get("items", [])
    if not isinstance(document, list) or not all(isinstance(item, dict) for item in document):
        raise ValueError("expected a list of objects or an object with an \"items\" list")
    return document


def pods_from_documents(document: Any) -> list[Pod]:
    return [Pod.from_dict(item) for item in _items(document)]


def nodes_from_documents(document: Any) -> list[Node]:
    return [Node.from_dict(item) for item in _items(document)]


def create_node_name_to_info_map(pods: Iterable[Pod], nodes: Iterable[Node]) -> dict[str, NodeInfo]:
    """Pivot pods and nodes into a map keyed by node name.

    Nodes without pods still get an entry; pods bound to a node that is
    not in ``nodes`` still get an entry with no node attached.
    """
    node_name_to_info: dict[str, NodeInfo] = {}
    for pod in pods:
        info = node_name_to_info.get(pod.node_name)
        if info is None:
            info = node_name_to_info[pod.node_name] = NodeInfo()
        info.add_pod(pod)
    for node in nodes:
        info = node_name_to_info.get(node.name)
        if info is None:
            info = node_name_to_info[node.name] = NodeInfo()
        info.set_node(node)
    return node_name_to_info


def node_summary_frame(node_infos: dict[str, NodeInfo]) -> pd.DataFrame:
    """Flatten a node info map into a DataFrame sorted by node name."""
    rows = [
        {
            "node": name,
            "uid": info.node.uid if info.node is not None else "",
            "pods": len(info.pods),
            "network_request": info.requested_network_bandwidth,
        }
        for name, info in node_infos.items()
    ]
    if not rows:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS).sort_values("node", kind="stable").reset_index(drop=True)
