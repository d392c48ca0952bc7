"""
Scoring oracle port interface.
"""

from typing import Protocol

class ScoringOraclePort(Protocol):
    """External text-completion service used for risk scoring"""

    async def complete(self, prompt: str) -> str:
        """
        Complete a prompt.

        Args:
            prompt: full prompt text

        Returns:
            raw completion text (not guaranteed to be JSON)
        """
        ...
