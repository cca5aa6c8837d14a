"""Logging proxy around a UserRepository.

Every call is timed and leaves a LogMessage node behind:

    (:LogMessage {time: <ms>, message: "add_journal_entry"})
    (:LogMessage {time: <ms>, message: "Failure:add_journal_entry"})

Calls made on behalf of a known user are linked to that user with an
ACTIVITY edge. ``create_user`` and ``get_user_by_username`` run before a
user is known to exist, so their log nodes stand alone.

The wrapped call's return value is passed through untouched. A write that
returns ``False`` is logged with the ``Failure:`` prefix; an exception is
logged to the Python logger and re-raised.
"""

import logging
import time
from datetime import date as Date
from typing import Callable, Optional, TypeVar

from dovetail.database import GraphConnection
from dovetail.errors import DovetailError
from dovetail.logic.user_repository import UserRepository
from dovetail.models import (
    EntryCollectionView,
    JournalEntry,
    Sentiment,
    User,
    UserContact,
    normalize_username,
)

logger = logging.getLogger("dovetail.activity")

FAILURE_PREFIX = "Failure:"

T = TypeVar("T")


class LoggingUserRepository(UserRepository):
    """Times each repository call and appends an activity log node."""

    def __init__(self, inner: UserRepository, db: GraphConnection):
        self.inner = inner
        self.db = db

    # =========================================================================
    # ACTIVITY LOG
    # =========================================================================

    def _log_for_user(self, username: str, ms: int, message: str) -> None:
        # MATCH, not MERGE: logging must never create a User node.
        self.db.execute("""
            CREATE (b:LogMessage {time: $time, message: $message})
            WITH b
            MATCH (a:User {username: $username})
            CREATE (a)-[:ACTIVITY]->(b)
        """, {"username": normalize_username(username), "time": ms, "message": message})

    def _log(self, ms: int, message: str) -> None:
        self.db.execute(
            "CREATE (:LogMessage {time: $time, message: $message})",
            {"time": ms, "message": message},
        )

    def _timed(self, operation: str, call: Callable[[], T], username: Optional[str] = None) -> T:
        t = time.perf_counter()
        try:
            result = call()
        except Exception as e:
            logger.error(f"{operation} raised {type(e).__name__}: {e}")
            raise
        ms = int((time.perf_counter() - t) * 1000)

        message = f"{FAILURE_PREFIX}{operation}" if result is False else operation
        logger.debug(f"{message} took {ms}ms")
        try:
            if username is None:
                self._log(ms, message)
            else:
                self._log_for_user(username, ms, message)
        except DovetailError as e:
            # The operation already ran; its result is still returned.
            logger.warning(f"Could not write activity log '{message}': {e}")
        return result

    # =========================================================================
    # UNLINKED OPERATIONS
    # =========================================================================

    def create_user(self, user: User) -> bool:
        return self._timed("create_user", lambda: self.inner.create_user(user))

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._timed("get_user_by_username",
                           lambda: self.inner.get_user_by_username(username))

    # =========================================================================
    # OPERATIONS LINKED TO THE ACTING USER
    # =========================================================================

    def add_journal_entry(self, entry: JournalEntry, username: str) -> bool:
        return self._timed("add_journal_entry",
                           lambda: self.inner.add_journal_entry(entry, username), username)

    def get_journal_entries(self, day: Date, username: str) -> EntryCollectionView:
        return self._timed("get_journal_entries",
                           lambda: self.inner.get_journal_entries(day, username), username)

    def delete_journal_entry(self, entry: JournalEntry, username: str) -> bool:
        return self._timed("delete_journal_entry",
                           lambda: self.inner.delete_journal_entry(entry, username), username)

    def get_same_sentiment_list(self, username: str, sentiment: Sentiment) -> list[UserContact]:
        return self._timed("get_same_sentiment_list",
                           lambda: self.inner.get_same_sentiment_list(username, sentiment), username)

    def create_new_user_contact(self, username: str, contact: UserContact) -> bool:
        return self._timed("create_new_user_contact",
                           lambda: self.inner.create_new_user_contact(username, contact), username)

    def get_user_contact_relationships(self, username: str) -> list[UserContact]:
        return self._timed("get_user_contact_relationships",
                           lambda: self.inner.get_user_contact_relationships(username), username)

    def update_user_password(self, username: str, password_hash: str, salt: str) -> bool:
        return self._timed("update_user_password",
                           lambda: self.inner.update_user_password(username, password_hash, salt),
                           username)

    def update_user_contact_info(self, username: str, contact_info: str) -> bool:
        return self._timed("update_user_contact_info",
                           lambda: self.inner.update_user_contact_info(username, contact_info),
                           username)
