"""
Upstream authentication: credential storage and the login/refresh flow.
"""

from pollution_proxy.auth.orchestrator import AuthOrchestrator, AuthState, RetryPolicy
from pollution_proxy.auth.token_store import Credentials, TokenStore

__all__ = [
    "AuthOrchestrator",
    "AuthState",
    "RetryPolicy",
    "Credentials",
    "TokenStore",
]
