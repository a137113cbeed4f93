"""
Call state tracking for the Call Lifecycle Controller.

This module provides the CallRegistry class which maps Telnyx call control ids to
their lifecycle state. The registry is owned by the controller alone; the Media
Bridge never reads it, since a media connection carries no call identifier it could
be joined on until streaming has started.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class CallState(str, Enum):
    """Lifecycle states of a call tracked by the controller."""
    PENDING = "pending"
    ANSWERED = "answered"
    STREAMING_REQUESTED = "streaming_requested"
    ENDED = "ended"


@dataclass
class Call:
    """One outbound (or observed inbound) call attempt."""
    call_id: str
    destination: Optional[str] = None
    state: CallState = CallState.PENDING
    created_at: float = field(default_factory=time.time)


class CallRegistry:
    """
    Registry of calls keyed by provider call control id.

    Calls are inserted when created and removed on a terminal notification;
    an ENDED call is never kept around.
    """

    def __init__(self):
        """Initialize an empty dictionary of tracked calls."""
        self.calls: Dict[str, Call] = {}

    def add(self, call: Call) -> Call:
        """
        Add a call to the registry, replacing any previous entry for its id.

        Args:
            call: The call to track

        Returns:
            The tracked call
        """
        self.calls[call.call_id] = call
        return call

    def get(self, call_id: str) -> Optional[Call]:
        """
        Get a tracked call by its id.

        Args:
            call_id: Provider call control id

        Returns:
            The call, or None if the id is not tracked
        """
        return self.calls.get(call_id)

    def remove(self, call_id: str) -> Optional[Call]:
        """
        Stop tracking a call.

        Args:
            call_id: Provider call control id

        Returns:
            The removed call, or None if the id was not tracked
        """
        return self.calls.pop(call_id, None)

    def all(self) -> Dict[str, Call]:
        return dict(self.calls)

    def __contains__(self, call_id: object) -> bool:
        return call_id in self.calls

    def __len__(self) -> int:
        return len(self.calls)
