"""
Observability for GeoAlert: logging, Prometheus metrics and the health app.
"""
