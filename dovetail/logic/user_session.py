"""User session - the operations a logged-in user performs.

Every public method returns ``Ok(value)`` or ``Err(kind, message)``.
Operations that need a logged-in user return ``Err(NOT_AUTHENTICATED)``
when called without one. Datastore and analysis failures are not turned
into results; they propagate as exceptions.
"""

import functools
import logging
from datetime import date as Date, datetime
from typing import Callable, Optional

from dovetail.analysis import SentimentAnalyzer
from dovetail.auth import create_salt, hash_password, verify_password
from dovetail.logic.matching import MatchingEngine
from dovetail.logic.user_repository import UserRepository
from dovetail.models import (
    Err,
    ErrorKind,
    JournalEntry,
    JournalEntryView,
    Ok,
    Result,
    Sentiment,
    SingleEntryView,
    User,
    UserContact,
    normalize_username,
)

logger = logging.getLogger("dovetail.session")


def requires_login(action: str):
    """Return Err(NOT_AUTHENTICATED) instead of running ``action`` anonymously."""
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            if not self.is_authenticated:
                return Err(ErrorKind.NOT_AUTHENTICATED, f"User must be logged in to {action}")
            return method(self, *args, **kwargs)
        return wrapper
    return decorator


class UserSession:
    def __init__(self, repo: UserRepository, analyzer: SentimentAnalyzer,
                 matching: Optional[MatchingEngine] = None,
                 now: Callable[[], datetime] = datetime.now):
        self.repo = repo
        self.analyzer = analyzer
        self.matching = matching or MatchingEngine(repo)
        self.now = now
        self.user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def username(self) -> Optional[str]:
        return self.user.username if self.user else None

    # =========================================================================
    # ACCOUNT
    # =========================================================================

    def register(self, username: str, password: str, contact_info: str) -> Result:
        """Create an account; an existing username is refused."""
        username = normalize_username(username)
        if self.repo.get_user_by_username(username) is not None:
            return Err(ErrorKind.USERNAME_TAKEN, "That username is already taken!")

        salt = create_salt()
        user = User(
            username=username,
            password_hash=hash_password(password, salt),
            salt=salt,
            contact_info=contact_info,
        )
        if not self.repo.create_user(user):
            # Someone registered the same name between the check and the write
            return Err(ErrorKind.USERNAME_TAKEN, "That username is already taken!")
        logger.info(f"Registered user {username}")
        return Ok(user)

    def login(self, username: str, password: str) -> Result:
        user = self.repo.get_user_by_username(normalize_username(username))
        if user is None or not verify_password(user.password_hash, password, user.salt):
            return Err(ErrorKind.INVALID_CREDENTIALS, "Login unsuccessful")
        self.user = user
        return Ok(user)

    def logout(self) -> None:
        self.user = None

    @requires_login("change their password")
    def update_password(self, new_password: str) -> Result:
        salt = create_salt()
        password_hash = hash_password(new_password, salt)
        if not self.repo.update_user_password(self.username, password_hash, salt):
            return Err(ErrorKind.WRITE_FAILED, "Password could not be updated")
        self.user = self.user.model_copy(update={"password_hash": password_hash, "salt": salt})
        return Ok(None)

    @requires_login("change their contact information")
    def update_contact_info(self, contact_info: str) -> Result:
        if not self.repo.update_user_contact_info(self.username, contact_info):
            return Err(ErrorKind.WRITE_FAILED, "Contact info could not be updated")
        self.user = self.user.model_copy(update={"contact_info": contact_info})
        return Ok(None)

    # =========================================================================
    # JOURNAL ENTRIES
    # =========================================================================

    @requires_login("create a journal entry")
    def create_journal_entry(self, content: str) -> Result:
        """Analyze the text, then save the entry with its topics."""
        entry = JournalEntry(content=content, date=self.now(), topics=self.analyzer.analyze(content))
        view = SingleEntryView(entry=entry)
        if not view.save(self.repo, self.username):
            return Err(ErrorKind.WRITE_FAILED, "Journal entry could not be saved")
        return Ok(view)

    @requires_login("retrieve journal entries")
    def retrieve_journal_entries(self, day: Date) -> Result:
        return Ok(self.repo.get_journal_entries(day, self.username))

    @requires_login("delete journal entries")
    def delete_journal_entry(self, view: JournalEntryView, index: int = 0) -> Result:
        if not 0 <= index < len(view):
            return Err(ErrorKind.INDEX_OUT_OF_RANGE, f"There is no journal entry #{index + 1}")
        if not view.delete(self.repo, self.username, index):
            return Err(ErrorKind.WRITE_FAILED, "Journal entry could not be deleted")
        return Ok(None)

    # =========================================================================
    # MATCHING
    # =========================================================================

    @requires_login("view other users with same sentiment")
    def same_sentiment_list(self, sentiment: Sentiment) -> Result:
        return Ok(self.matching.find_same_sentiment(self.username, sentiment))

    @requires_login("create a GUID")
    def create_guid(self, contact: UserContact) -> Result:
        guid = self.matching.create_guid(self.username, contact)
        if guid is None:
            return Err(ErrorKind.WRITE_FAILED, "The match could not be recorded")
        return Ok(guid)

    @requires_login("view associated GUIDs")
    def associated_guids(self) -> Result:
        return Ok(self.matching.list_connections(self.username))
