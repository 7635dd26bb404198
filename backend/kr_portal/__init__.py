"""KR portal backend: role capabilities, dashboard sessions and realtime notifications."""

__version__ = "0.1.0"
