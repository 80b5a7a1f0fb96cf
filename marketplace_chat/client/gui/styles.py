"""Shared style constants for the GUI client."""

SIDEBAR_BG = "#0f172a"
PRIMARY_BG = "#1e293b"
SURFACE_BG = "#334155"
ACCENT = "#9333ea"
ACCENT_HOVER = "#a855f7"
BUBBLE_SENT = "#7e22ce"
BUBBLE_RECEIVED = "#334155"
TEXT_PRIMARY = "#f1f5f9"
TEXT_MUTED = "#94a3b8"
ERROR = "#f87171"
PADDING = 8
BORDER_RADIUS = 10
THUMBNAIL_SIZE = 48
