"""
dessim package initializer.

This package contains a process-oriented discrete-event simulation kernel
(clock, event list, generator-based processes, FIFO resource pools), its
collaborators (random streams, trace sink, config) and the harbour berth
allocation model built on top of it.
"""
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "errors", "timing", "queues", "process", "resources", "scheduler",
    "streams", "trace", "config", "harbour", "metrics", "simulation",
]
