"""Isolated OCR worker: a bounded request queue drained by one dedicated thread.

The capture loop hands crops over with :meth:`RecognitionUnit.submit` and never
waits. The worker lazily initialises its engine on the first request, turns any
per-request failure into a zero-confidence result, and keeps going. A slow
engine shows up as dropped requests instead of an ever-growing backlog.
"""

import logging
import queue
import threading
from typing import Callable, Optional, Protocol, Tuple

from ..core.models import RecognitionRequest, RecognitionResult
from .tesseract_engine import TesseractEngine

logger = logging.getLogger(__name__)

ResultCallback = Callable[[RecognitionResult], None]

_STOP = object()


class RecognitionEngine(Protocol):
    ready: bool

    def init(self) -> None: ...

    def recognise(self, image_buffer: bytes) -> Tuple[str, float]: ...

    def shutdown(self) -> None: ...


class RecognitionUnit:
    """Single-consumer OCR worker thread."""

    def __init__(
        self,
        on_result: ResultCallback,
        engine: Optional[RecognitionEngine] = None,
        queue_size: int = 8,
        name: str = "ocr-worker",
    ):
        self.on_result = on_result
        self.engine = engine if engine is not None else TesseractEngine()
        self.name = name
        self._queue: "queue.Queue" = queue.Queue(maxsize=queue_size)
        self._thread: Optional[threading.Thread] = None
        self._terminated = False
        self._ready = False
        self._unavailable_logged = False
        self.dropped_requests = 0
        self.processed_requests = 0

    @property
    def ready(self) -> bool:
        """True once the worker has produced at least one result."""
        return self._ready

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def available(self) -> bool:
        """False when the worker thread died without being terminated."""
        if self._thread is None or self._terminated:
            return False
        if not self._thread.is_alive():
            if not self._unavailable_logged:
                logger.error(f"[{self.name}] Worker thread is dead - recognition unavailable")
                self._unavailable_logged = True
            return False
        return True

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self._thread is not None:
            return
        if self._terminated:
            raise RuntimeError("RecognitionUnit cannot be restarted after terminate(); create a new one")
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.debug(f"[{self.name}] Worker started")

    def submit(self, request: RecognitionRequest) -> bool:
        """Queue a request without blocking. Returns False if it was dropped."""
        if self._terminated:
            return False
        # Dead worker: reported once through `available`, nothing queued
        if self._thread is not None and not self.available:
            return False
        try:
            self._queue.put_nowait(request)
            return True
        except queue.Full:
            self.dropped_requests += 1
            logger.warning(
                f"[{self.name}] Queue full, dropped {request.zone_id} capture "
                f"({self.dropped_requests} dropped so far)"
            )
            return False

    def terminate(self, timeout: float = 5.0) -> None:
        """Stop the worker after the request in flight; pending requests are discarded."""
        if self._terminated:
            return
        self._terminated = True
        self._ready = False

        self._drain()
        try:
            self._queue.put_nowait(_STOP)
        except queue.Full:
            # Worker raced us and refilled the queue; drain again to make room
            self._drain()
            self._queue.put_nowait(_STOP)

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(f"[{self.name}] Worker still busy after {timeout}s, leaving it to exit on its own")
        elif self._thread is None:
            self.engine.shutdown()
        logger.debug(f"[{self.name}] Worker terminated")

    def process(self, request: RecognitionRequest) -> RecognitionResult:
        """Run one request through the engine; never raises."""
        try:
            if not self.engine.ready:
                self.engine.init()
            text, confidence = self.engine.recognise(request.image_buffer)
            return RecognitionResult(
                text=text.strip(),
                zone_id=request.zone_id,
                confidence=max(0.0, min(100.0, float(confidence))),
                timestamp=request.timestamp,
            )
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.warning(f"[{self.name}] Recognition failed for {request.zone_id}: {message}")
            return RecognitionResult.failure(request.zone_id, request.timestamp, message)

    def _run(self) -> None:
        try:
            while True:
                request = self._queue.get()
                if request is _STOP:
                    break
                result = self.process(request)
                self.processed_requests += 1
                # Late results after terminate() are dropped
                if self._terminated:
                    continue
                self._ready = True
                try:
                    self.on_result(result)
                except Exception:
                    logger.exception(f"[{self.name}] Result handler failed")
        finally:
            try:
                self.engine.shutdown()
            except Exception:
                logger.exception(f"[{self.name}] Engine shutdown failed")

    def _drain(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return
