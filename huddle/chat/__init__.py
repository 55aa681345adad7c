from .cues import CueEngine, CueKind, CueState, get_engine
from .service import Chat, open_chat

__all__ = [
    "Chat",
    "CueEngine",
    "CueKind",
    "CueState",
    "get_engine",
    "open_chat",
]
