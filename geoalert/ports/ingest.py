"""
Inbound message port interface.

This module defines the protocol for inbound reports, feed entries,
responses and location updates.
"""

from typing import AsyncIterator, Protocol

class InboundPort(Protocol):
    """Inbound message source"""

    def recv(self) -> AsyncIterator[dict]:
        """
        Yield decoded inbound messages.

        Yields:
            raw dict carrying a "kind" key
        """
        ...
