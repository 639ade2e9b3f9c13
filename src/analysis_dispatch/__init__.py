"""Bounded-concurrency batch dispatcher for external analysis workers."""

__version__ = "0.1.0"
