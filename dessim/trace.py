# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# trace.py
# -----------------------------------------------------------------------------
# Purpose:
#   Trace/debug sink: collects (time, process id, message) notes emitted by
#   process code and error diagnostics emitted by the run loop.
#
# Design notes:
#   - Notes are kept only inside their time window [start, end); errors
#     are always kept.
#   - Recording appends to an in-memory deque and never blocks the run loop.
#     Each kept record is mirrored to the "dessim.trace" logger.
#
# Usage:
#   sink = TraceSink(TimeWindow(0, 100), TimeWindow(0, 50))
#   sink.note(sim.now, proc.id, "is docked")
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from .timing import TimeWindow

logger = logging.getLogger(__name__)

NOTE = "note"
DEBUG = "debug"
ERROR = "error"


@dataclass(frozen=True)
class TraceRecord:
    time: float
    process_id: str
    level: str
    message: str

    def __str__(self):
        return f"{self.time:10.3f} [{self.level}] {self.process_id}: {self.message}"


class TraceSink:
    """In-memory trace collector with trace and debug windows.

    Parameters
    ----------
    trace_window : TimeWindow
        Window in which note() records are kept.
    debug_window : TimeWindow
        Window in which debug() records are kept.
    maxlen : int, optional
        Keep only the most recent ``maxlen`` records.
    """
    def __init__(self, trace_window: Optional[TimeWindow] = None, debug_window: Optional[TimeWindow] = None,
                 maxlen: Optional[int] = None):
        self.trace_window = trace_window if trace_window is not None else TimeWindow()
        self.debug_window = debug_window if debug_window is not None else TimeWindow.never()
        self._records: Deque[TraceRecord] = deque(maxlen=maxlen)

    def note(self, time: float, process_id: str, message: str):
        if self.trace_window.contains(time):
            self._append(TraceRecord(time, process_id, NOTE, message), logging.INFO)

    def debug(self, time: float, process_id: str, message: str):
        if self.debug_window.contains(time):
            self._append(TraceRecord(time, process_id, DEBUG, message), logging.DEBUG)

    def error(self, time: float, process_id: str, message: str):
        self._append(TraceRecord(time, process_id, ERROR, message), logging.WARNING)

    def _append(self, rec: TraceRecord, level: int):
        self._records.append(rec)
        logger.log(level, "%s", rec)

    @property
    def records(self) -> List[TraceRecord]:
        return list(self._records)

    @property
    def errors(self) -> List[TraceRecord]:
        return [r for r in self._records if r.level == ERROR]

    def flush(self) -> List[TraceRecord]:
        """Return all records collected so far and clear the buffer."""
        out = list(self._records)
        self._records.clear()
        return out

    def __len__(self):
        return len(self._records)
