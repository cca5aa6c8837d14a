"""Matching Engine - same-sentiment candidates and match tokens.

A candidate is another user who wrote about the same topic with the same
sentiment within the last seven days. When the user picks a candidate, a
random token (the GUID) is minted and stored on a UserConnection node that
both users are linked to; the two users can compare tokens off-platform to
confirm the match.
"""

import logging
import uuid
from typing import Callable, Optional

from dovetail.logic.user_repository import UserRepository
from dovetail.models import Sentiment, UserContact

logger = logging.getLogger("dovetail.matching")


def new_match_token() -> str:
    """A 128-bit random identifier (uuid4, drawn from the OS CSPRNG)."""
    return str(uuid.uuid4())


class MatchingEngine:
    """Finds same-sentiment candidates and records matches."""

    def __init__(self, repo: UserRepository, token_factory: Callable[[], str] = new_match_token):
        self.repo = repo
        self.token_factory = token_factory

    def find_same_sentiment(self, username: str, sentiment: Sentiment) -> list[UserContact]:
        """Candidates for the user, one per shared (other user, topic) row."""
        candidates = self.repo.get_same_sentiment_list(username, Sentiment(sentiment))
        logger.info(f"{len(candidates)} {Sentiment(sentiment).value} candidate(s) for {username}")
        return candidates

    def create_guid(self, username: str, contact: UserContact) -> Optional[str]:
        """Mint a match token for a chosen candidate and persist the match.

        The token is set on ``contact`` as well as returned.

        Returns:
            The token, or None if the datastore reported that nothing was
            written.
        """
        if contact.topic is None:
            raise ValueError("a match needs the topic the users share")
        contact.guid = self.token_factory()
        if not self.repo.create_new_user_contact(username, contact):
            logger.warning(f"Match between {username} and {contact.username} was not recorded")
            return None
        return contact.guid

    def list_connections(self, username: str) -> list[UserContact]:
        """Every match token the user holds, with the other user's contact info."""
        return self.repo.get_user_contact_relationships(username)
