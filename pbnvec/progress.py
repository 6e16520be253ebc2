"""Progress reporting and cooperative cancellation between stage steps."""
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from pbnvec.types import PipelineCancelled

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class ProgressEvent:
    """Progress of one stage.

    ``value`` is stage specific: the k-means delta for clustering, the
    fraction completed (0..1) for every other stage.
    """
    stage: str
    value: float


class CancellationToken:
    """Flag a caller sets to abort a run at the next progress callback."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = "") -> None:
        if self._event.is_set():
            raise PipelineCancelled(f"Run cancelled during stage '{stage}'")


class StageProgress:
    """Builds per-stage progress callbacks for the orchestrator."""

    def __init__(
        self,
        on_event: Optional[Callable[[ProgressEvent], None]] = None,
        token: Optional[CancellationToken] = None,
    ):
        self.on_event = on_event
        self.token = token

    def for_stage(self, stage: str) -> ProgressCallback:
        def report(value: float) -> None:
            if self.token is not None:
                self.token.raise_if_cancelled(stage)
            logger.debug(f"{stage}: {value:.3f}")
            if self.on_event is not None:
                self.on_event(ProgressEvent(stage, float(value)))

        return report


def report_every(total: int, on_progress: Optional[ProgressCallback], steps: int = 20):
    """Return a function of the processed count that reports a few times in total."""
    interval = max(1, total // steps)

    def tick(done: int) -> None:
        if on_progress is not None and (done % interval == 0 or done == total):
            on_progress(done / total if total else 1.0)

    return tick
