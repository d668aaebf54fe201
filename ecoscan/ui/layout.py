from nicegui import app, ui
from ecoscan.ui.theme import apply_theme
from ecoscan.services.rewards import GreenCoinLedger, ledger_registry


def session_ledger() -> GreenCoinLedger:
    """Ledger of the browser behind the current page (keyed by NiceGUI's browser id)."""
    return ledger_registry.get(app.storage.browser['id'])


def create_layout(content_function):
    """
    Wraps the content_function in the standard application layout
    (Header, Content Area).
    """
    apply_theme()
    ledger = session_ledger()

    with ui.header().classes('items-center justify-between bg-white text-gray-800 shadow-sm'):
        with ui.row().classes('items-center gap-2'):
            ui.icon('recycling', color='positive').classes('text-3xl')
            ui.label('EcoScan').classes('text-xl font-bold')

        with ui.row().classes('items-center gap-1'):
            ui.label('🪙').classes('text-xl')
            ui.label().classes('font-bold text-green-600').bind_text_from(
                ledger, 'balance', backward=lambda b: f"{b} Green Coins")

    with ui.column().classes('w-full items-center'):
        content_function()
