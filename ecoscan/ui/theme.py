from nicegui import ui

def apply_theme():
    """Applies the global color theme to the application."""
    ui.colors(
        primary='#16a34a',   # Green
        secondary='#3b82f6', # Blue
        accent='#22c55e',    # Light green
        dark='#1f2937',      # Slate
        positive='#16a34a',
        negative='#dc2626',
        info='#0ea5e9',
        warning='#f59e0b'
    )
