# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# errors.py
# -----------------------------------------------------------------------------
# Purpose:
#   Exception taxonomy for the kernel. The three process-level errors are
#   fatal to the process that triggers them, never to the simulation run.
#
# Design notes:
#   - The Scheduler catches SimulationError, terminates the offending
#     process, reports it to the trace sink and keeps popping events.
#   - Anything that is not a SimulationError propagates out of run().
#
# Usage:
#   from dessim.errors import SchedulingError, InvalidRequestError
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Any, Optional


class SimulationError(Exception):
    """Base class for errors raised by process-authoring mistakes.

    Parameters
    ----------
    message : str
        Human readable description.
    process : Process, optional
        The process whose action was rejected.
    time : float, optional
        Simulation time at which it happened.
    """
    def __init__(self, message: str, process: Optional[Any] = None, time: Optional[float] = None):
        super().__init__(message)
        self.process = process
        self.time = time


class SchedulingError(SimulationError):
    """A negative delay, a double activation, or a clock moved backwards."""


class InvalidRequestError(SimulationError):
    """acquire() asked for units <= 0 or more than the pool could ever hold."""


class ResourceIntegrityError(SimulationError):
    """release() for units the process does not currently hold."""


class ConfigError(ValueError):
    """Invalid experiment configuration."""
