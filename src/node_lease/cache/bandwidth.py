"""Parsing of the pod network bandwidth annotation."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from node_lease.core.constants import BANDWIDTH_SUFFIX_MULTIPLIERS, NETWORK_BANDWIDTH_ANNOTATION

if TYPE_CHECKING:
    from node_lease.cache.node_info import Pod

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")

logger = logging.getLogger(__name__)


def parse_bandwidth(request: str) -> int | None:
    """Parse a bandwidth quantity such as ``"100"`` or ``"10M"``.

    The quantity is a base-10 integer with an optional ``K``, ``M``, ``G``
    or ``T`` suffix (powers of 1000). The numeric part must fit in a signed
    32-bit integer. Returns None when the string is not a valid quantity.
    """
    if not request:
        return None
    multiplier = BANDWIDTH_SUFFIX_MULTIPLIERS.get(request[-1])
    digits = request[:-1] if multiplier is not None else request
    if not _INTEGER_PATTERN.fullmatch(digits):
        return None
    value = int(digits, 10)
    if not _INT32_MIN <= value <= _INT32_MAX:
        return None
    return value * (multiplier or 1)


def get_network_request(pod: Pod) -> int:
    """Return the pod's requested network bandwidth, or 0 if none is declared.

    Examples:
        "100"  -> 100
        "10M"  -> 10000000
        "abc"  -> 0
    """
    request = pod.annotations.get(NETWORK_BANDWIDTH_ANNOTATION)
    if not request:
        return 0
    value = parse_bandwidth(request)
    if value is None:
        logger.debug(f"Ignoring invalid bandwidth annotation {request!r} on pod {pod.namespace}/{pod.name}")
        return 0
    return value
