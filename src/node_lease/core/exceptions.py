"""Custom exceptions for node-lease.

Store errors are split so callers can tell the expected outcomes of a
remote call (not found, already exists, stale concurrency token) apart
from transient failures worth retrying.
"""


class NodeLeaseError(Exception):
    """Base exception for all node-lease errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(NodeLeaseError):
    """Exception raised for invalid controller or CLI configuration.

    Examples:
        - Empty holder identity
        - Non-positive lease duration or status update frequency
        - Backoff window where max_delay < base_delay
    """

    def __init__(self, message: str, field: str | None = None, details: str | None = None):
        self.field = field
        super().__init__(message, details)


class LeaseStoreError(NodeLeaseError):
    """Exception raised when a lease store call fails.

    Without a more specific subclass this is a transient failure
    (availability, I/O, unreadable document) and the caller may retry.
    """

    def __init__(
        self,
        message: str,
        namespace: str | None = None,
        name: str | None = None,
        details: str | None = None,
        original_error: Exception | None = None,
    ):
        self.namespace = namespace
        self.name = name
        self.original_error = original_error
        super().__init__(message, details)

    def __str__(self) -> str:
        parts = [self.message]
        if self.namespace and self.name:
            parts.append(f"lease {self.namespace}/{self.name}")
        if self.details:
            parts.append(self.details)
        return " - ".join(parts)


class LeaseNotFoundError(LeaseStoreError):
    """Raised by ``get`` when no lease exists under the requested key."""

    pass


class LeaseAlreadyExistsError(LeaseStoreError):
    """Raised by ``create`` when a lease already exists under the key."""

    pass


class LeaseConflictError(LeaseStoreError):
    """Raised by ``update`` when the submitted resource version is stale.

    The caller must fetch the latest record and rebuild its update on top.
    """

    pass


class NodeLookupError(NodeLeaseError):
    """Exception raised when a node's UID cannot be resolved.

    Attributes:
        node_name: Name of the node that was looked up
    """

    def __init__(self, message: str, node_name: str, details: str | None = None):
        self.node_name = node_name
        super().__init__(message, details)


class LeaseRenewalError(NodeLeaseError):
    """Exception raised when every renewal attempt in a cycle failed.

    Attributes:
        attempts: Number of update attempts made
        last_error: Error returned by the final attempt
    """

    def __init__(self, attempts: int, last_error: Exception | None = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"failed {attempts} attempts to update node lease")
