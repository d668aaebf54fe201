import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ecoscan.core.models import PipelineSnapshot, PipelineStatus, ScanEvent, ScanOutcome
from ecoscan.services.scanner.classifier import ClassificationClient
from ecoscan.services.scanner.errors import ClassificationError, NoFrameAvailable, ScanError
from ecoscan.services.scanner.frame_source import Frame, FrameSource
from ecoscan.services.scanner.reconciler import ScanReconciler

logger = logging.getLogger(__name__)

DEFAULT_CAPTURE_PERIOD = 1.5


class CancellationToken:
    """Marks one live-mode session. Cancelled when live mode stops."""

    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ScannerManager:
    """
    Capture loop controller for the scanning pipeline.

    States:
        Idle            no timer, nothing outstanding
        Capturing       live mode armed, periodic timer running
        AwaitingResult  one frame request / classification outstanding

    At most one submission is outstanding at a time. Timer ticks that fire
    while one is outstanding are dropped, never queued.
    """

    def __init__(self, client: ClassificationClient, reconciler: ScanReconciler,
                 capture_period: float = DEFAULT_CAPTURE_PERIOD):
        self.client = client
        self.reconciler = reconciler
        self.capture_period = capture_period

        self.status = PipelineStatus.IDLE
        self.last_error: Optional[str] = None
        self.listeners: List[Callable[[ScanEvent], None]] = []

        self._frame_source: Optional[FrameSource] = None
        self._live_token: Optional[CancellationToken] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._torn_down = False

    # --- State ---

    @property
    def live(self) -> bool:
        return self._live_token is not None and not self._live_token.cancelled

    @property
    def busy(self) -> bool:
        return self._inflight is not None

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def get_snapshot(self) -> PipelineSnapshot:
        return PipelineSnapshot(
            status=self.status,
            live=self.live,
            current=self.reconciler.current,
            history=self.reconciler.history.items(),
            last_error=self.last_error,
        )

    def register_listener(self, listener: Callable[[ScanEvent], None]):
        if listener not in self.listeners:
            self.listeners.append(listener)

    def unregister_listener(self, listener: Callable[[ScanEvent], None]):
        if listener in self.listeners:
            self.listeners.remove(listener)

    def _emit(self, event_type: str, data: Optional[Dict[str, Any]] = None):
        if not self.listeners:
            return
        event = ScanEvent(type=event_type, data=data or {}, snapshot=self.get_snapshot())
        for listener in list(self.listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Scan listener failed on {event_type}: {e}")

    def _set_status(self, status: PipelineStatus):
        if status == self.status:
            return
        logger.debug(f"Pipeline status {self.status.value} -> {status.value}")
        self.status = status
        self._emit('status_update', {'status': status.value})

    def _settled_status(self) -> PipelineStatus:
        if self._inflight is not None:
            return PipelineStatus.AWAITING_RESULT
        return PipelineStatus.CAPTURING if self.live else PipelineStatus.IDLE

    # --- Live mode ---

    def start_live(self, frame_source: FrameSource) -> bool:
        """Arms live mode. Must be called from a running event loop."""
        if self._torn_down:
            logger.warning("Scanner torn down, ignoring start request")
            return False

        if self.live:
            self._frame_source = frame_source
            return True

        token = CancellationToken()
        self._live_token = token
        self._frame_source = frame_source
        self._timer_task = asyncio.get_running_loop().create_task(self._timer_loop(token))
        logger.info(f"Live scanning started (every {self.capture_period:.2f}s)")

        self._set_status(self._settled_status())
        return True

    def stop_live(self):
        """Cancels the timer. An outstanding call finishes, but the loop will not re-arm."""
        if self._live_token is not None:
            self._live_token.cancel()
            self._live_token = None
            logger.info("Live scanning stopped")

        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

        self._frame_source = None
        if not self._torn_down:
            self._set_status(self._settled_status())

    async def _timer_loop(self, token: CancellationToken):
        while not token.cancelled:
            await asyncio.sleep(self.capture_period)
            if token.cancelled:
                break
            self.tick()

    def tick(self) -> bool:
        """One timer tick. Returns True if a submission was started."""
        if not self.live or self._frame_source is None:
            return False

        if self._inflight is not None:
            logger.debug("Tick dropped: classification still in flight")
            return False

        self._inflight = asyncio.get_running_loop().create_task(
            self._live_submission(self._frame_source.sample_frame)
        )
        return True

    async def _live_submission(self, grab: Callable[[], Awaitable[Frame]]):
        try:
            await self._submit(grab)
        except NoFrameAvailable as e:
            logger.debug(f"Live tick skipped: {e}")
        except ClassificationError as e:
            logger.warning(f"Live scan failed: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error in live scan: {e}")

    # --- One-shot ---

    async def scan_once(self, frame_source: FrameSource) -> Optional[ScanOutcome]:
        """
        Classifies a single frame outside the timer.

        Returns None if the pipeline is busy or torn down. Scan errors are
        re-raised after the pipeline is back in a stable state.
        """
        if self._torn_down:
            logger.warning("Scanner torn down, ignoring scan request")
            return None

        if self._inflight is not None:
            logger.info("Scan request ignored: classification already in flight")
            return None

        task = asyncio.get_running_loop().create_task(self._submit(frame_source.capture_once))
        self._inflight = task
        # Caller cancellation (e.g. page closed) must not abort the request itself
        return await asyncio.shield(task)

    # --- Submission ---

    async def _submit(self, grab: Callable[[], Awaitable[Frame]]) -> Optional[ScanOutcome]:
        self._set_status(PipelineStatus.AWAITING_RESULT)
        try:
            frame = await grab()
            result = await self.client.classify(frame)

            outcome = self.reconciler.reconcile(result)
            if self._torn_down:
                # Reward and history still land; nobody is listening for status any more
                logger.info(f"Reconciled {result.waste_type} after teardown")
                return outcome

            self.last_error = None
            self._emit('scan_finished', {'outcome_id': outcome.id})
            return outcome

        except ScanError as e:
            if not self._torn_down:
                self.last_error = str(e)
                self._emit('scan_failed', {'error': type(e).__name__, 'message': str(e)})
            raise

        except Exception as e:
            if not self._torn_down:
                self.last_error = f"Unexpected error: {e}"
                self._emit('scan_failed', {'error': type(e).__name__, 'message': str(e)})
            raise

        finally:
            self._inflight = None
            if not self._torn_down:
                self._set_status(self._settled_status())

    async def wait_for_result(self):
        """Waits until the outstanding submission, if any, has settled."""
        task = self._inflight
        if task is not None:
            await asyncio.wait({task})

    # --- Teardown ---

    def teardown(self):
        """
        Terminal shutdown. The timer stops and listeners are dropped; an
        outstanding call still reconciles once but emits no events and
        never re-arms.
        """
        if self._torn_down:
            return
        self.stop_live()
        self._torn_down = True
        self.status = PipelineStatus.IDLE
        self.listeners.clear()
        logger.info("Scanner torn down")

    def reset_history(self):
        self.reconciler.reset()
        self._emit('status_update', {'status': self.status.value})
