"""Case set-up and run control."""

from .case import Case
from .time import TimeControl

__all__ = ["Case", "TimeControl"]
