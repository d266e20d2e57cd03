"""
Display name allocation.

Guarantees that every granted display name is unique among active sessions
by appending a numeric suffix taken from a process-wide counter.
"""

import itertools
from collections.abc import Iterator
from typing import NamedTuple

from ..structured_logging.enhanced_logging_config import get_logger
from .session import ConnectionSession
from .session_registry import SessionRegistry

logger = get_logger(__name__)


class NameAllocation(NamedTuple):
    """Result of a name allocation."""

    granted: str
    changed: bool


class NameAllocator:
    """
    Grants unique display names.

    The suffix counter is shared by every allocation and never reset, so a
    suffix is never handed out twice, even after the colliding name frees up.
    """

    def __init__(self, first_suffix: int = 1) -> None:
        self._suffixes: Iterator[int] = itertools.count(first_suffix)

    def allocate(
        self,
        requested: str,
        registry: SessionRegistry,
        requester: ConnectionSession | None = None,
    ) -> NameAllocation:
        """
        Decide the name to grant for a request.

        Args:
            requested: The name the client asked for
            registry: Registry of currently active sessions
            requester: The requesting session; its own current name is not a collision

        Returns:
            NameAllocation with the granted name and whether it differs from the request
        """
        candidate = requested
        attempts = 0
        while self._collides(candidate, registry, requester):
            candidate = f"{requested}{next(self._suffixes)}"
            attempts += 1

        if attempts:
            logger.debug("Display name adjusted", requested=requested, granted=candidate, attempts=attempts)
        return NameAllocation(granted=candidate, changed=candidate != requested)

    @staticmethod
    def _collides(candidate: str, registry: SessionRegistry, requester: ConnectionSession | None) -> bool:
        if not candidate:
            return True
        holder = registry.find_by_name(candidate)
        return holder is not None and holder is not requester
