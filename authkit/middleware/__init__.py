from .core import AuthContext, AuthGuard, extract_bearer, status_for

__all__ = ["AuthContext", "AuthGuard", "extract_bearer", "status_for"]
