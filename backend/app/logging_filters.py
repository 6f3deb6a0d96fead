"""Logging filters referenced from the LOGGING dict."""

import logging


class MaxLevelFilter(logging.Filter):
    """Pass records at or below ``level`` so the app log stays free of errors."""

    def __init__(self, level: str | int) -> None:
        super().__init__()
        if isinstance(level, str):
            resolved = logging.getLevelName(level.upper())
            if not isinstance(resolved, int):
                raise ValueError(f"Unknown logging level: {level}")
            level = resolved
        self.levelno = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self.levelno
