from .config import DEFAULT_USER_AGENT, AppSettings, DebugMode

__all__ = [
    "DEFAULT_USER_AGENT",
    "AppSettings",
    "DebugMode",
]
