"""
Reliability Module - Black Box Interface

Purpose: Bounded, deterministic retry schedules
Interface: BackoffPolicy, Clock, SystemClock
"""

from .backoff import BackoffPolicy, Clock, SystemClock

__all__ = ["BackoffPolicy", "Clock", "SystemClock"]
