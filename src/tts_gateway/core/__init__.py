"""
Core Infrastructure for tts-gateway.

    - config.py: Settings loading, provider record and validated config
    - logging/: Structured logging with numeric levels
    - metrics.py: Prometheus metrics collection
"""
