# src/letterpose/ui/state.py

from enum import Enum, auto


class LoopState(Enum):
    IDLE = auto()
    RUNNING = auto()
    STOPPED = auto()
