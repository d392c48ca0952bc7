"""
Scoring-oracle adapter for GeoAlert.
"""

from .client import ChatCompletionOracle, OracleError

__all__ = ["ChatCompletionOracle", "OracleError"]
