"""Target implementations."""

from .base import Target
from .email import EmailConfig, EmailTarget
from .file import FileTarget
from .memory import MemoryTarget
from .stream import StreamTarget

__all__ = [
    "Target",
    "EmailConfig",
    "EmailTarget",
    "FileTarget",
    "MemoryTarget",
    "StreamTarget",
]
