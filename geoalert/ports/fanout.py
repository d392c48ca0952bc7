"""
Fan-out channel port interface.

At-most-once publish to a topic; no acknowledgement is expected.
"""

from typing import Protocol

class FanOutPort(Protocol):
    """Publish/subscribe fan-out channel"""

    async def publish(self, topic: str, payload: dict) -> None:
        """
        Publish a JSON-serialisable payload.

        Args:
            topic: topic relative to the channel's prefix
            payload: message body

        Raises:
            Exception: the publish failed; callers decide whether to isolate it
        """
        ...
