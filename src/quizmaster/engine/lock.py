"""The exam lock: at most one exam session may be running per bank."""

from __future__ import annotations

from typing import Optional

from ..errors import ExamLockedError

__all__ = ["ExamLock"]


class ExamLock:
    """A re-entrant-per-holder flag owned by the host application.

    The host creates one lock (per bank, or one global lock) and hands it to
    every exam session it builds. A session acquires it on start and
    releases it when it completes or is aborted.
    """

    def __init__(self) -> None:
        self._holder: Optional[object] = None

    @property
    def locked(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> Optional[object]:
        return self._holder

    def acquire(self, holder: object) -> None:
        if self._holder is not None and self._holder is not holder:
            raise ExamLockedError(
                "Another exam session is already running against this bank."
            )
        self._holder = holder

    def release(self, holder: object) -> bool:
        if self._holder is not holder:
            return False
        self._holder = None
        return True
