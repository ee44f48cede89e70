"""Per-node aggregation of pods for the node summary utility."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from node_lease.cache.bandwidth import get_network_request


@dataclass
class Pod:
    """Minimal pod view: identity, placement and annotations."""

    name: str
    namespace: str = "default"
    node_name: str = ""
    annotations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pod:
        """Build a pod from either a flat dict or a Kubernetes-style object.

        Raises:
            ValueError: If the pod has no name or its annotations are not a mapping
        """
        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else data
        spec = data.get("spec") if isinstance(data.get("spec"), dict) else data
        name = metadata.get("name")
        if not name:
            raise ValueError(f"pod without a name: {data!r}")
        annotations = metadata.get("annotations") or {}
        if not isinstance(annotations, dict):
            raise ValueError(f"pod {name!r} has non-mapping annotations: {annotations!r}")
        return cls(
            name=str(name),
            namespace=str(metadata.get("namespace", "default")),
            node_name=str(spec.get("nodeName", spec.get("node_name", "")) or ""),
            annotations={str(k): str(v) for k, v in annotations.items()},
        )


@dataclass
class Node:
    """Minimal node view."""

    name: str
    uid: str = ""
    labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else data
        name = metadata.get("name")
        if not name:
            raise ValueError(f"node without a name: {data!r}")
        labels = metadata.get("labels") or {}
        if not isinstance(labels, dict):
            raise ValueError(f"node {name!r} has non-mapping labels: {labels!r}")
        return cls(
            name=str(name),
            uid=str(metadata.get("uid", "") or ""),
            labels={str(k): str(v) for k, v in labels.items()},
        )


class NodeInfo:
    """Aggregated information about one node and the pods placed on it."""

    def __init__(self, *pods: Pod):
        self.node: Node | None = None
        self.pods: list[Pod] = []
        self.requested_network_bandwidth = 0
        for pod in pods:
            self.add_pod(pod)

    def add_pod(self, pod: Pod) -> None:
        self.pods.append(pod)
        self.requested_network_bandwidth += get_network_request(pod)

    def set_node(self, node: Node) -> None:
        self.node = node

    @property
    def node_name(self) -> str:
        if self.node is not None:
            return self.node.name
        return self.pods[0].node_name if self.pods else ""

    def __repr__(self) -> str:
        return (
            f"NodeInfo(node={self.node_name!r}, pods={len(self.pods)}, "
            f"requested_network_bandwidth={self.requested_network_bandwidth})"
        )
