from .logging import FrameTimer, FrameTiming, get_logger

__all__ = [
    "FrameTimer",
    "FrameTiming",
    "get_logger",
]
