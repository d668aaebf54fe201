from nicegui import ui

from ecoscan.core.config import config_manager
from ecoscan.core.logging_setup import setup_logging
setup_logging(config_manager.get_log_level())

from ecoscan.ui.layout import create_layout
from ecoscan.ui.scan import scan_page

@ui.page('/')
def home():
    create_layout(scan_page)

@ui.page('/scan')
def scan():
    create_layout(scan_page)

if __name__ in {"__main__", "__mp_main__"}:
    # Disable reload to prevent restart loops when writing to data/ (config)
    # Browser storage keys the per-visitor Green Coin ledger
    ui.run(title='EcoScan', favicon='♻️', reload=False,
           storage_secret=config_manager.get_storage_secret())
