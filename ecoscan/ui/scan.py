from nicegui import ui, context, events
import inspect
import logging
import queue
from typing import Optional

from ecoscan.core.config import config_manager
from ecoscan.core.constants import (
    BIN_BADGE_CLASSES,
    BIN_ICON_NAMES,
    DEFAULT_BIN_BADGE_CLASSES,
    SEVERITY_CLASSES,
)
from ecoscan.core.models import PipelineSnapshot, PipelineStatus, ScanEvent, ScanOutcome
from ecoscan.services.rewards import GreenCoinLedger
from ecoscan.services.scanner import (
    BrowserFrameSource,
    ClassificationError,
    DeviceFrameSource,
    FrameSource,
    NoFrameAvailable,
    UploadFrameSource,
    build_scanner,
)
from ecoscan.ui.layout import session_ledger

logger = logging.getLogger(__name__)

JS_CAMERA_CODE = """
<script>
window.scannerVideo = null;
window.scannerStream = null;
window.scanner_js_loaded = true;

async function startCamera() {
    window.scannerVideo = document.getElementById('scanner-video');
    if (!window.scannerVideo) return false;

    if (window.scannerStream) stopCamera();

    try {
        window.scannerStream = await navigator.mediaDevices.getUserMedia({
            audio: false,
            video: { facingMode: "environment" }
        });
        window.scannerVideo.srcObject = window.scannerStream;
        await window.scannerVideo.play();
        return true;
    } catch (err) {
        console.error("Error accessing camera:", err);
        return false;
    }
}

function stopCamera() {
    if (window.scannerStream) {
        window.scannerStream.getTracks().forEach(track => track.stop());
        window.scannerStream = null;
    }
    if (window.scannerVideo) {
        window.scannerVideo.srcObject = null;
    }
}

function captureSingleFrame() {
    const video = window.scannerVideo;
    if (!video || video.readyState < 2 || !video.videoWidth) return null;

    const canvas = document.createElement('canvas');
    canvas.width = video.videoWidth;
    canvas.height = video.videoHeight;
    canvas.getContext('2d').drawImage(video, 0, 0);
    return canvas.toDataURL('image/jpeg', 0.92);
}
</script>
"""

NOTIFY_TYPES = {
    "success": "positive",
    "error": "negative",
    "warning": "warning",
    "info": "info",
}


class ScanPage:
    def __init__(self, run_javascript=None, ledger: Optional[GreenCoinLedger] = None):
        self.run_javascript = run_javascript or ui.run_javascript
        self.ledger = ledger if ledger is not None else GreenCoinLedger()
        self.event_queue: "queue.Queue[ScanEvent]" = queue.Queue()
        self.notice_queue: "queue.Queue[tuple]" = queue.Queue()
        self.is_active = True
        self.camera_open = False
        self.device_source: Optional[DeviceFrameSource] = None

        self.manager = build_scanner(config_manager, self.ledger, self)
        self.manager.register_listener(self.on_scanner_event)
        self.snapshot: PipelineSnapshot = self.manager.get_snapshot()

    # --- Collaborators ---

    def notify(self, message: str, kind: str = "info"):
        """Notification sink for the pipeline. Shown on the next consumer tick."""
        self.notice_queue.put((message, kind))

    def on_scanner_event(self, event: ScanEvent):
        if not self.is_active: return
        self.event_queue.put(event)

    async def event_consumer(self):
        """Consumes pipeline events and notices and updates the UI."""
        try:
            changed = False
            while not self.event_queue.empty():
                try:
                    event = self.event_queue.get_nowait()
                except queue.Empty:
                    break
                self.snapshot = event.snapshot
                changed = True
                if event.type == 'scan_failed':
                    logger.info(f"Scan failed: {event.data.get('message')}")

            while not self.notice_queue.empty():
                try:
                    message, kind = self.notice_queue.get_nowait()
                except queue.Empty:
                    break
                ui.notify(message, type=NOTIFY_TYPES.get(kind, 'info'))

            if changed:
                self.refresh_ui()
        except Exception as e:
            logger.error(f"Error in event_consumer: {e}")

    def refresh_ui(self):
        self.render_scanner.refresh()
        self.render_result.refresh()
        self.render_history.refresh()

    # --- Actions ---

    def _live_frame_source(self) -> FrameSource:
        device = config_manager.get_camera_device()
        if device is None:
            return BrowserFrameSource(self.run_javascript)

        if self.device_source is None:
            self.device_source = DeviceFrameSource(device)
        if self.device_source.capture is None:
            self.device_source.open()
        return self.device_source

    async def open_camera(self):
        self.camera_open = True
        try:
            if config_manager.get_camera_device() is None:
                started = await self.run_javascript('startCamera()', timeout=20.0)
                if not started:
                    self.camera_open = False
                    ui.notify("Failed to start camera", type='negative')
                    return
            self.manager.start_live(self._live_frame_source())
        except Exception as e:
            self.camera_open = False
            logger.error(f"Error starting camera: {e}")
            ui.notify(f"Error starting camera: {e}", type='negative')

    async def close_camera(self):
        self.manager.stop_live()
        self.camera_open = False
        if self.device_source is not None:
            # A tick may still be reading from the device
            await self.manager.wait_for_result()
            self.device_source.release()
        try:
            await self.run_javascript('stopCamera()')
        except Exception as e:
            logger.warning(f"Failed to stop browser camera: {e}")

    async def handle_upload(self, e: events.UploadEventArguments):
        # Handle NiceGUI version differences
        file_obj = getattr(e, 'content', getattr(e, 'file', None))
        content = None
        if file_obj is not None:
            content = file_obj.read()
            if inspect.isawaitable(content):
                content = await content

        filename = getattr(e, 'name', None) or getattr(file_obj, 'name', None)
        await self.scan_upload(UploadFrameSource(content, filename))

    async def scan_upload(self, source: UploadFrameSource):
        try:
            outcome = await self.manager.scan_once(source)
            if outcome is None and self.manager.busy:
                ui.notify("Still analyzing the previous item", type='warning')
        except NoFrameAvailable as err:
            ui.notify(str(err), type='warning')
        except ClassificationError as err:
            ui.notify(f"Scan failed: {err}", type='negative')
        except Exception as err:
            logger.error(f"Upload scan failed: {err}")
            ui.notify(f"Scan failed: {err}", type='negative')

    def cleanup(self):
        self.is_active = False
        self.manager.unregister_listener(self.on_scanner_event)
        self.manager.teardown()
        if self.device_source is not None:
            self.device_source.release()

    # --- Rendering ---

    @ui.refreshable
    def render_scanner(self):
        with ui.card().classes('w-full p-8 items-center'):
            if self.snapshot.status == PipelineStatus.AWAITING_RESULT and not self.camera_open:
                ui.spinner(size='4em', color='positive')
                ui.label("Analyzing item...").classes('text-lg font-medium text-gray-700')
                ui.label("AI is identifying waste type and disposal method").classes('text-sm text-gray-500')
                return

            busy = self.snapshot.status == PipelineStatus.AWAITING_RESULT
            with ui.row().classes('gap-4 justify-center'):
                ui.button('Take Photo', icon='photo_camera', on_click=self.open_camera) \
                    .props('outline color=positive size=lg').set_enabled(not busy)
                upload = ui.upload(on_upload=self.handle_upload, auto_upload=True, max_files=1) \
                    .props('accept="image/*" flat label="Upload Image" color=secondary')
                upload.set_enabled(not busy)

            ui.label("Supports JPG, PNG formats. AI powered by advanced image recognition.") \
                .classes('text-sm text-gray-500 mt-4')
            if self.snapshot.last_error:
                ui.label(self.snapshot.last_error).classes('text-xs text-red-500')

    @ui.refreshable
    def render_result(self):
        item = self.snapshot.current
        if item is None:
            return

        with ui.card().classes('w-full p-8'):
            with ui.row().classes('items-start gap-4 no-wrap'):
                ui.label(item.icon).classes('text-6xl')
                with ui.column().classes('flex-grow gap-2'):
                    with ui.row().classes('items-center gap-2'):
                        ui.label(item.label).classes('text-2xl font-bold text-gray-800')
                        ui.icon('check_circle', color='positive').classes('text-2xl')

                    with ui.row().classes('items-center gap-3'):
                        self._render_bin_badge(item)
                        ui.label(item.category).classes('px-3 py-1 rounded-full text-sm bg-gray-100 text-gray-700')
                        ui.label(f"Priority: {item.severity.value.upper()}") \
                            .classes(f"text-sm font-medium {SEVERITY_CLASSES.get(item.severity.value, 'text-gray-600')}")
                        if item.confidence is not None:
                            ui.label(f"{item.confidence:.0%} confident").classes('text-sm text-gray-500')

                    with ui.card().classes('w-full bg-blue-50 border border-blue-200 shadow-none'):
                        ui.label("Disposal Instructions").classes('font-medium text-blue-800')
                        ui.label(item.guidance).classes('text-blue-700')

                    with ui.row().classes('w-full items-center justify-between'):
                        ui.label(f"🪙 +{item.reward_points} Green Coins").classes('font-bold text-green-600')
                        ui.label(f"Scanned {item.captured_at.strftime('%H:%M:%S')}").classes('text-sm text-gray-500')

    @ui.refreshable
    def render_history(self):
        if not self.snapshot.history:
            return

        with ui.card().classes('w-full p-8'):
            ui.label("Recent Scans").classes('text-xl font-bold text-gray-800 mb-4')
            with ui.grid(columns=3).classes('w-full gap-4'):
                for item in self.snapshot.history:
                    with ui.card().classes('p-4 border border-gray-200 shadow-none'):
                        with ui.row().classes('items-center gap-3'):
                            ui.label(item.icon).classes('text-2xl')
                            with ui.column().classes('gap-1'):
                                ui.label(item.label).classes('font-medium text-gray-800')
                                self._render_bin_badge(item, small=True)
                        with ui.row().classes('w-full justify-between text-sm'):
                            ui.label(f"+{item.reward_points} coins").classes('text-green-600 font-medium')
                            ui.label(item.captured_at.strftime('%Y-%m-%d')).classes('text-gray-500')

    def _render_bin_badge(self, item: ScanOutcome, small: bool = False):
        size = 'text-xs px-2 py-1' if small else 'text-sm px-3 py-1'
        badge = BIN_BADGE_CLASSES.get(item.bin.name, DEFAULT_BIN_BADGE_CLASSES)
        with ui.row().classes(f'items-center gap-1 rounded-full font-medium {size} {badge}'):
            ui.icon(BIN_ICON_NAMES.get(item.bin.icon, 'recycling'))
            ui.label(item.bin.name)

    def render_camera_overlay(self):
        with ui.element('div').classes('fixed inset-0 bg-black/50 flex items-center justify-center z-50') \
                .bind_visibility_from(self, 'camera_open'):
            with ui.card().classes('p-4 items-center'):
                ui.html('<video id="scanner-video" autoplay playsinline muted style="width: 400px;"></video>', sanitize=False)
                ui.label().classes('text-sm text-gray-500').bind_text_from(
                    self, 'snapshot', backward=lambda s: "Analyzing..." if s.status == PipelineStatus.AWAITING_RESULT else "Scanning...")
                ui.button('Close Camera', on_click=self.close_camera).props('color=negative').classes('w-full')


def scan_page():
    client = context.client
    page = ScanPage(run_javascript=client.run_javascript, ledger=session_ledger())
    client.on_disconnect(page.cleanup)

    ui.add_head_html(JS_CAMERA_CODE)

    with ui.column().classes('w-full max-w-4xl mx-auto py-8 gap-8'):
        with ui.column().classes('w-full items-center gap-1'):
            ui.icon('qr_code_scanner', color='positive').classes('text-5xl')
            ui.label('AI Waste Scanner').classes('text-3xl font-bold text-gray-800')
            ui.label('Scan items to learn proper disposal methods and earn Green Coins').classes('text-gray-600')

        page.render_scanner()
        page.render_result()
        page.render_history()

    page.render_camera_overlay()

    ui.timer(0.1, page.event_consumer)
