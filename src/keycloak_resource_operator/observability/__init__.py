"""
Observability package - structured logging and Prometheus metrics.
"""
