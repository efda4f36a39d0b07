"""Ingestion layer.

This package contains the helpers every transport uses to turn inbound
gateway messages into typed payloads and readings.
"""

__all__: list[str] = []
