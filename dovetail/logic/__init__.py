"""Logic module for journal persistence and sentiment matching."""

from .matching import MatchingEngine
from .repository_proxy import LoggingUserRepository
from .user_repository import GraphUserRepository, UserRepository
from .user_session import UserSession

__all__ = [
    "GraphUserRepository",
    "LoggingUserRepository",
    "MatchingEngine",
    "UserRepository",
    "UserSession",
]
