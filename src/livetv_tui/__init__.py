"""Terminal IPTV player with playlist browsing and mpv playback."""

__version__ = "0.1.0"
