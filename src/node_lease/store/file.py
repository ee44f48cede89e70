"""File-backed lease store and node registry.

Layout under the store root:

    leases/<namespace>/<name>.json   one lease document per key
    nodes/<name>.json                node documents ({"name", "uid"})
    revision                         store-wide resource version counter
    .store.lock                      lock file serializing all writers

Design principles:
- Every read-modify-write runs under one exclusive store lock, so the
  resource-version compare and the replace are a single atomic step.
- Documents are written to a temp file and moved into place with
  ``os.replace``; readers never observe a partially written lease.
- Low-level I/O and JSON failures surface as ``LeaseStoreError`` so the
  controller treats them as transient.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
import time
import uuid
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from node_lease.core.config import is_dns_subdomain
from node_lease.core.constants import (
    LEASES_DIRNAME,
    NODES_DIRNAME,
    STORE_LOCK_ATTEMPTS,
    STORE_LOCK_FILENAME,
    STORE_LOCK_RETRY_SLEEP_SECONDS,
)
from node_lease.core.exceptions import (
    LeaseAlreadyExistsError,
    LeaseConflictError,
    LeaseNotFoundError,
    LeaseStoreError,
    NodeLookupError,
)
from node_lease.lease.models import Lease

try:
    import fcntl
except ImportError:  # pragma: no cover - exercised on non-POSIX only
    fcntl = None


def _validate_name(kind: str, value: str) -> None:
    if not is_dns_subdomain(value):
        raise ValueError(f"invalid {kind} {value!r}: must be a lowercase RFC 1123 subdomain")


def _write_all(fd: int, payload: bytes) -> None:
    """Write complete payload to fd, handling short writes."""
    total_written = 0
    while total_written < len(payload):
        written = os.write(fd, payload[total_written:])
        if written <= 0:
            raise OSError("short write while persisting lease document")
        total_written += written


def _atomic_write_bytes(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        try:
            _write_all(fd, payload)
            os.fsync(fd)
        finally:
            os.close(fd)
        os.replace(tmp_name, path)
    except OSError:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    _atomic_write_bytes(path, (json.dumps(data, sort_keys=True, indent=2) + "\n").encode("utf-8"))


def _read_json(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} does not contain a JSON object")
    return data


class FileLeaseStore:
    """Lease store persisting one JSON document per lease under ``root``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _lease_path(self, namespace: str, name: str) -> Path:
        _validate_name("namespace", namespace)
        _validate_name("lease name", name)
        return self.root / LEASES_DIRNAME / namespace / f"{name}.json"

    @contextlib.contextmanager
    def _locked(self, namespace: str | None = None, name: str | None = None) -> Iterator[None]:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            lock_path = self.root / STORE_LOCK_FILENAME
            if fcntl is not None:
                cm = _flock(lock_path)
            else:  # pragma: no cover - exercised on non-POSIX only
                cm = _marker_lock(lock_path)
            with cm:
                yield
        except LeaseStoreError:
            raise
        except OSError as e:
            raise LeaseStoreError(
                "lease store unavailable", namespace=namespace, name=name, details=str(e), original_error=e
            ) from e

    def _next_version(self) -> str:
        revision_path = self.root / "revision"
        current = 0
        if revision_path.exists():
            raw = revision_path.read_text(encoding="utf-8").strip()
            try:
                current = int(raw or "0")
            except ValueError as e:
                # Restarting the counter could hand out versions a stale writer still holds.
                raise LeaseStoreError("corrupt resource version counter", details=repr(raw)) from e
        revision = str(current + 1)
        _atomic_write_bytes(revision_path, f"{revision}\n".encode())
        return revision

    def _load(self, path: Path, namespace: str, name: str) -> Lease:
        try:
            return Lease.from_dict(_read_json(path))
        except FileNotFoundError as e:
            raise LeaseNotFoundError("lease not found", namespace=namespace, name=name) from e
        except (OSError, ValueError) as e:
            raise LeaseStoreError(
                "unreadable lease document", namespace=namespace, name=name, details=str(e), original_error=e
            ) from e

    def get(self, namespace: str, name: str) -> Lease:
        path = self._lease_path(namespace, name)
        with self._locked(namespace, name):
            return self._load(path, namespace, name)

    def create(self, lease: Lease) -> Lease:
        path = self._lease_path(lease.namespace, lease.name)
        with self._locked(lease.namespace, lease.name):
            if path.exists():
                raise LeaseAlreadyExistsError("lease already exists", namespace=lease.namespace, name=lease.name)
            return self._write(path, lease)

    def update(self, lease: Lease) -> Lease:
        path = self._lease_path(lease.namespace, lease.name)
        with self._locked(lease.namespace, lease.name):
            current = self._load(path, lease.namespace, lease.name)
            if lease.resource_version != current.resource_version:
                raise LeaseConflictError(
                    "the object has been modified; please apply your changes to the latest version and try again",
                    namespace=lease.namespace,
                    name=lease.name,
                    details=f"resource version {lease.resource_version} != {current.resource_version}",
                )
            return self._write(path, lease)

    def _write(self, path: Path, lease: Lease) -> Lease:
        stored = lease.copy()
        try:
            stored.resource_version = self._next_version()
            _atomic_write_json(path, stored.to_dict())
        except OSError as e:
            raise LeaseStoreError(
                "failed to persist lease", namespace=lease.namespace, name=lease.name, details=str(e), original_error=e
            ) from e
        return stored

    def list_leases(self, namespace: str) -> list[Lease]:
        _validate_name("namespace", namespace)
        directory = self.root / LEASES_DIRNAME / namespace
        with self._locked(namespace):
            if not directory.is_dir():
                return []
            return [self._load(path, namespace, path.stem) for path in sorted(directory.glob("*.json"))]


@contextlib.contextmanager
def _flock(lock_path: Path) -> Iterator[None]:
    fd = os.open(str(lock_path), os.O_CREAT | os.O_RDWR, 0o600)
    try:
        assert fcntl is not None  # For type checkers.
        fcntl.flock(fd, fcntl.LOCK_EX)
        try:
            yield
        finally:
            with contextlib.suppress(OSError):
                fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        with contextlib.suppress(OSError):
            os.close(fd)


@contextlib.contextmanager
def _marker_lock(lock_path: Path) -> Iterator[None]:
    """Exclusive-create marker lock for platforms without ``fcntl``."""
    marker = lock_path.with_name(f"{lock_path.name}.marker")
    for _ in range(STORE_LOCK_ATTEMPTS):
        try:
            fd = os.open(str(marker), os.O_CREAT | os.O_EXCL | os.O_RDWR, 0o600)
        except FileExistsError:
            time.sleep(STORE_LOCK_RETRY_SLEEP_SECONDS)
            continue
        os.close(fd)
        try:
            yield
        finally:
            with contextlib.suppress(FileNotFoundError):
                marker.unlink()
        return
    raise LeaseStoreError("timed out waiting for lease store lock", details=str(marker))


class FileNodeRegistry:
    """Node registry reading ``nodes/<name>.json`` documents under ``root``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _node_path(self, name: str) -> Path:
        _validate_name("node name", name)
        return self.root / NODES_DIRNAME / f"{name}.json"

    def register(self, name: str, uid: str | None = None) -> str:
        """Write a node document and return its UID (a new uuid4 when omitted)."""
        node_uid = uid or str(uuid.uuid4())
        _atomic_write_json(self._node_path(name), {"name": name, "uid": node_uid})
        return node_uid

    def resolve(self, name: str) -> str:
        path = self._node_path(name)
        try:
            data = _read_json(path)
        except FileNotFoundError as e:
            raise NodeLookupError("node not found", node_name=name) from e
        except (OSError, ValueError) as e:
            raise NodeLookupError("node document unreadable", node_name=name, details=str(e)) from e

        uid = data.get("uid")
        if not isinstance(uid, str) or not uid:
            raise NodeLookupError("node document has no uid", node_name=name)
        return uid
