"""Lease record model.

Field names follow the coordination.k8s.io/v1 Lease schema on the wire
(``to_dict``/``from_dict``) and snake_case in Python.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from node_lease.core.constants import NODE_API_VERSION, NODE_KIND

_MICRO_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def format_micro_time(value: datetime) -> str:
    """Render ``value`` as RFC 3339 UTC with six fractional digits."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(_MICRO_TIME_FORMAT)


def parse_micro_time(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Raises:
        ValueError: If ``value`` is not a valid timestamp
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"invalid timestamp: {value!r}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass
class OwnerReference:
    """Back-reference from a lease to the node object that owns it."""

    name: str
    uid: str
    kind: str = NODE_KIND
    api_version: str = NODE_API_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OwnerReference:
        try:
            return cls(
                name=str(data["name"]),
                uid=str(data["uid"]),
                kind=str(data.get("kind", NODE_KIND)),
                api_version=str(data.get("apiVersion", NODE_API_VERSION)),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"invalid owner reference: {data!r}") from e


@dataclass
class Lease:
    """A node's liveness record.

    Attributes:
        name: Record key within the namespace (the holder identity)
        namespace: Namespace the record lives in
        holder_identity: Node that holds the lease
        lease_duration_seconds: How long readers treat a renewal as valid
        renew_time: Time of the last create or renewal, microsecond precision
        owner_references: Node back-reference; empty until the node UID is known
        resource_version: Opaque concurrency token owned by the store
    """

    name: str
    namespace: str
    holder_identity: str
    lease_duration_seconds: int
    renew_time: datetime | None = None
    owner_references: list[OwnerReference] = field(default_factory=list)
    resource_version: str | None = None

    @property
    def has_owner(self) -> bool:
        return bool(self.owner_references)

    def copy(self) -> Lease:
        """Return a deep copy that shares no mutable state with this lease."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.resource_version is not None:
            metadata["resourceVersion"] = self.resource_version
        if self.owner_references:
            metadata["ownerReferences"] = [ref.to_dict() for ref in self.owner_references]

        spec: dict[str, Any] = {
            "holderIdentity": self.holder_identity,
            "leaseDurationSeconds": self.lease_duration_seconds,
        }
        if self.renew_time is not None:
            spec["renewTime"] = format_micro_time(self.renew_time)

        return {
            "apiVersion": "coordination.k8s.io/v1",
            "kind": "Lease",
            "metadata": metadata,
            "spec": spec,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Lease:
        """Build a lease from its wire form.

        Raises:
            ValueError: If required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise ValueError("lease document must be an object")
        metadata = data.get("metadata")
        spec = data.get("spec")
        if not isinstance(metadata, dict) or not isinstance(spec, dict):
            raise ValueError("lease document requires metadata and spec objects")

        try:
            name = str(metadata["name"])
            namespace = str(metadata["namespace"])
            duration = int(spec["leaseDurationSeconds"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"invalid lease document: {e}") from e

        renew_raw = spec.get("renewTime")
        renew_time = parse_micro_time(renew_raw) if renew_raw is not None else None

        owners_raw = metadata.get("ownerReferences") or []
        if not isinstance(owners_raw, list):
            raise ValueError("ownerReferences must be a list")

        resource_version = metadata.get("resourceVersion")
        return cls(
            name=name,
            namespace=namespace,
            holder_identity=str(spec.get("holderIdentity", name)),
            lease_duration_seconds=duration,
            renew_time=renew_time,
            owner_references=[OwnerReference.from_dict(ref) for ref in owners_raw],
            resource_version=str(resource_version) if resource_version is not None else None,
        )
