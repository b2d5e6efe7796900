from .query_cache import QueryCache
from .session_context import SessionContext
from .session_manager import SessionManager

__all__ = ["QueryCache", "SessionContext", "SessionManager"]
