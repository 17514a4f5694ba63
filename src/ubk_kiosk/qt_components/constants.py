"""
Layout constants and style definitions for PySide6 kiosk components.

Centralizes magic numbers so they're defined once and referenced everywhere.
"""


class Colors:
    """Central color palette used across all components."""

    # Dark base
    WINDOW_BG = '#000000'
    PANEL_BG = '#232227'
    TEXT = '#E6E6E6'
    MUTED_TEXT = '#888'

    # Buttons
    BUTTON_BG = '#3C3C3C'
    BUTTON_HOVER = '#4A4A4A'
    ACCENT = '#4A6FA5'
    DANGER = '#C42B1C'

    # Overlay scrim behind modal panels
    SCRIM = 'rgba(0, 0, 0, 170)'

    # Lock screen
    LOCK_BG = '#111114'
    ERROR_TEXT = '#FF6B6B'


class Sizes:
    """Widget dimensions (pixels)."""

    DIALOG_W = 520
    DIALOG_H = 360
    BUTTON_H = 64
    PIN_INPUT_W = 280
    PAUSE_BUTTON = 72
    PAUSE_BUTTON_MARGIN = 24
    FONT_TITLE = 22
    FONT_BODY = 16


class Timing:
    """Adapter-side timer intervals (ms)."""

    PAUSE_BUTTON_HIDE_DELAY = 5000   # pause trigger auto-hide
    INBOX_DRAIN = 100                # API command hand-off
    ACTIVITY_THROTTLE = 1000         # max one activity ping per second
    COUNTDOWN_STEP = 1000            # inactivity prompt countdown label


class Styles:
    """Reusable stylesheet snippets."""

    PANEL = (
        f"QFrame#panel {{ background-color: {Colors.PANEL_BG};"
        f" border-radius: 12px; }}"
    )
    TITLE = f"color: {Colors.TEXT}; font-size: {Sizes.FONT_TITLE}px; font-weight: bold;"
    BODY = f"color: {Colors.TEXT}; font-size: {Sizes.FONT_BODY}px;"
    ERROR = f"color: {Colors.ERROR_TEXT}; font-size: {Sizes.FONT_BODY}px;"
    BUTTON = (
        f"QPushButton {{ background-color: {Colors.BUTTON_BG}; color: {Colors.TEXT};"
        f" border: none; border-radius: 8px; font-size: {Sizes.FONT_BODY}px;"
        f" min-height: {Sizes.BUTTON_H}px; padding: 0 18px; }}"
        f"QPushButton:pressed {{ background-color: {Colors.BUTTON_HOVER}; }}"
    )
    ACCENT_BUTTON = BUTTON.replace(Colors.BUTTON_BG, Colors.ACCENT, 1)
    DANGER_BUTTON = BUTTON.replace(Colors.BUTTON_BG, Colors.DANGER, 1)
    INPUT = (
        f"QLineEdit {{ background-color: #1E1E1E; color: {Colors.TEXT};"
        f" border: 1px solid #555; border-radius: 6px; font-size: 24px;"
        f" padding: 8px; }}"
    )
