"""
Telemetry Module
================

Error tracking for the metaboard API (Sentry).

Usage:
    from metaboard.telemetry import init_sentry, capture_exception
"""

from metaboard.telemetry.sentry import capture_exception, init_sentry

__all__ = [
    "init_sentry",
    "capture_exception",
]
