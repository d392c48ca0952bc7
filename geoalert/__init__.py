"""
GeoAlert: location-aware emergency alert engine.
"""

__version__ = "0.1.0"
