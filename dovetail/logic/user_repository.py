"""User Repository - users, journal entries, topics and matches in FalkorDB.

Graph layout:
    (User)-[:AUTHOR]->(JournalEntry)-[:<sentiment label>]->(Topic)
    (User)-[:SIMILAR]->(UserConnection)<-[:SIMILAR]-(User)
    (User)-[:ACTIVITY]->(LogMessage)          (written by the logging proxy)

All values are bound as query parameters. The only tokens inlined into
query text are the configured sentiment relationship types, which are
validated identifiers and are backtick-quoted on the way in.

Upserts use MERGE, so re-running a write that already succeeded does not
duplicate nodes or edges. UserConnection nodes are the exception: each one
records a match event and is always created.
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import date as Date, datetime
from typing import Callable, Optional

from dovetail.config_loader import SentimentLabels
from dovetail.database import GraphConnection
from dovetail.db_result_helpers import quote_identifier
from dovetail.errors import IntegrityError
from dovetail.logic.reconstructor import (
    reconstruct_connections,
    reconstruct_journal_entries,
    reconstruct_same_sentiment,
)
from dovetail.models import (
    EntryCollectionView,
    JournalEntry,
    Sentiment,
    User,
    UserContact,
    normalize_username,
)

logger = logging.getLogger("dovetail.repository")

SECONDS_PER_DAY = 86400
SECONDS_PER_WEEK = 604800


def day_window(day) -> tuple[int, int]:
    """Half-open [midnight, next midnight) window for a day, in Unix seconds."""
    if isinstance(day, datetime):
        day = day.date()
    start = int(datetime.combine(day, datetime.min.time()).timestamp())
    return start, start + SECONDS_PER_DAY


class UserRepository(ABC):
    """Persistence operations the rest of the application relies on."""

    @abstractmethod
    def create_user(self, user: User) -> bool: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def add_journal_entry(self, entry: JournalEntry, username: str) -> bool: ...

    @abstractmethod
    def get_journal_entries(self, day: Date, username: str) -> EntryCollectionView: ...

    @abstractmethod
    def delete_journal_entry(self, entry: JournalEntry, username: str) -> bool: ...

    @abstractmethod
    def get_same_sentiment_list(self, username: str, sentiment: Sentiment) -> list[UserContact]: ...

    @abstractmethod
    def create_new_user_contact(self, username: str, contact: UserContact) -> bool: ...

    @abstractmethod
    def get_user_contact_relationships(self, username: str) -> list[UserContact]: ...

    @abstractmethod
    def update_user_password(self, username: str, password_hash: str, salt: str) -> bool: ...

    @abstractmethod
    def update_user_contact_info(self, username: str, contact_info: str) -> bool: ...


class GraphUserRepository(UserRepository):
    """UserRepository backed by a FalkorDB graph."""

    def __init__(self, db: GraphConnection, labels: SentimentLabels,
                 clock: Callable[[], float] = time.time):
        self.db = db
        self.labels = labels
        self.clock = clock

    def _rel(self, sentiment: Sentiment) -> str:
        return quote_identifier(self.labels.label_for(sentiment))

    # =========================================================================
    # USERS
    # =========================================================================

    def create_user(self, user: User) -> bool:
        """Create a User node; an existing username is left untouched.

        Returns:
            True if a node was created, False if none was (e.g. the username
            already exists).
        """
        rs = self.db.execute("""
            MERGE (u:User {username: $username})
            ON CREATE SET u.passwordHash = $password_hash,
                          u.salt = $salt,
                          u.contactInfo = $contact_info
        """, {
            "username": normalize_username(user.username),
            "password_hash": user.password_hash,
            "salt": user.salt,
            "contact_info": user.contact_info,
        })
        return rs.nodes_created > 0

    def get_user_by_username(self, username: str) -> Optional[User]:
        rs = self.db.execute(
            "MATCH (u:User {username: $username}) RETURN u",
            {"username": normalize_username(username)},
        )
        users = rs.column("u")
        if not users:
            return None
        if len(users) > 1:
            raise IntegrityError(f"{len(users)} User nodes share the username '{username}'")
        node = users[0]
        return User(
            username=node["username"],
            password_hash=node.get("passwordHash") or "",
            salt=node.get("salt") or "",
            contact_info=node.get("contactInfo") or "",
        )

    def update_user_password(self, username: str, password_hash: str, salt: str) -> bool:
        rs = self.db.execute("""
            MATCH (u:User {username: $username})
            SET u.passwordHash = $password_hash, u.salt = $salt
        """, {
            "username": normalize_username(username),
            "password_hash": password_hash,
            "salt": salt,
        })
        return rs.properties_set > 0

    def update_user_contact_info(self, username: str, contact_info: str) -> bool:
        rs = self.db.execute("""
            MATCH (u:User {username: $username})
            SET u.contactInfo = $contact_info
        """, {"username": normalize_username(username), "contact_info": contact_info})
        return rs.properties_set > 0

    # =========================================================================
    # JOURNAL ENTRIES
    # =========================================================================

    def add_journal_entry(self, entry: JournalEntry, username: str) -> bool:
        """Upsert the author, the entry, its AUTHOR edge and every topic edge.

        Everything goes out as one composed query, so a single call cannot
        leave the entry saved without its topics.
        """
        params = {
            "username": normalize_username(username),
            "date": entry.timestamp,
            "content": entry.content,
        }
        clauses = [
            "MERGE (a:User {username: $username})",
            "MERGE (b:JournalEntry {date: $date, content: $content})",
            "MERGE (a)-[:AUTHOR]->(b)",
        ]

        seen = set()
        for topic in entry.topics:
            key = (topic.keyword, topic.sentiment)
            if key in seen:
                continue
            seen.add(key)
            i = len(seen) - 1
            params[f"topic_{i}"] = topic.keyword
            clauses.append(f"MERGE (t{i}:Topic {{keyword: $topic_{i}}})")
            clauses.append(f"MERGE (b)-[:{self._rel(topic.sentiment)}]->(t{i})")

        rs = self.db.execute("\n".join(clauses), params)
        logger.debug(
            f"Saved entry {entry.timestamp} for {params['username']}: "
            f"{rs.nodes_created} nodes, {rs.relationships_created} edges created"
        )
        return True

    def get_journal_entries(self, day: Date, username: str) -> EntryCollectionView:
        """Entries written by the user on a day, with their topics."""
        start, end = day_window(day)
        rels = "|".join(quote_identifier(label) for label in self.labels.all_labels())
        rs = self.db.execute(f"""
            MATCH (u:User {{username: $username}})
            OPTIONAL MATCH (u)-[:AUTHOR]-(j:JournalEntry)
            WHERE j.date >= $start AND j.date < $end
            OPTIONAL MATCH (j)-[r:{rels}]-(t:Topic)
            RETURN j,
                   CASE WHEN type(r) = $positive THEN t ELSE NULL END AS positive,
                   CASE WHEN type(r) = $negative THEN t ELSE NULL END AS negative,
                   CASE WHEN type(r) = $neutral THEN t ELSE NULL END AS neutral
            ORDER BY j.date, j.content
        """, {
            "username": normalize_username(username),
            "start": start,
            "end": end,
            "positive": self.labels.positive,
            "negative": self.labels.negative,
            "neutral": self.labels.neutral,
        })
        if isinstance(day, datetime):
            day = day.date()
        return reconstruct_journal_entries(rs, day)

    def delete_journal_entry(self, entry: JournalEntry, username: str) -> bool:
        """Delete the user's entry at the entry's exact timestamp.

        Topic nodes stay; other entries may still point at them.
        """
        rs = self.db.execute("""
            MATCH (a:User {username: $username})-[:AUTHOR]-(j:JournalEntry)
            WHERE j.date = $date
            DETACH DELETE j
        """, {"username": normalize_username(username), "date": entry.timestamp})
        return rs.nodes_deleted > 0

    # =========================================================================
    # MATCHING
    # =========================================================================

    def get_same_sentiment_list(self, username: str, sentiment: Sentiment) -> list[UserContact]:
        """Other users who felt the same about a shared topic in the last week.

        Both entries must be dated strictly after ``now - 7 days``. One row
        per (other user, topic, entry pair); rows are not deduplicated.
        """
        sentiment = Sentiment(sentiment)
        rel = self._rel(sentiment)
        week_ago = int(self.clock()) - SECONDS_PER_WEEK
        rs = self.db.execute(f"""
            MATCH (a1:User {{username: $username}})-[:AUTHOR]-(j1:JournalEntry)-[:{rel}]-(t:Topic)
                  -[:{rel}]-(j2:JournalEntry)-[:AUTHOR]-(a2:User)
            WHERE a1.username <> a2.username
              AND j1.date > $week_ago
              AND j2.date > $week_ago
            RETURN a2.username AS username, a2.contactInfo AS contact_info, t
        """, {"username": normalize_username(username), "week_ago": week_ago})
        return reconstruct_same_sentiment(rs, sentiment)

    def create_new_user_contact(self, username: str, contact: UserContact) -> bool:
        """Record a match event between two users.

        A new UserConnection is created on every call, even when an
        equivalent one already exists.
        """
        if not contact.guid or contact.topic is None:
            raise ValueError("contact needs a guid and a topic to be recorded")
        rs = self.db.execute("""
            MERGE (a:User {username: $first_username})
            MERGE (c:User {username: $second_username})
            CREATE (b:UserConnection {date: $date, guid: $guid, topic: $topic, sentiment: $sentiment})
            CREATE (a)-[:SIMILAR]->(b)
            CREATE (c)-[:SIMILAR]->(b)
        """, {
            "first_username": normalize_username(username),
            "second_username": normalize_username(contact.username),
            "date": int(self.clock()),
            "guid": contact.guid,
            "topic": contact.topic.keyword,
            "sentiment": contact.topic.sentiment.value,
        })
        return rs.nodes_created > 0

    def get_user_contact_relationships(self, username: str) -> list[UserContact]:
        """Every match the user is part of, naming the other user."""
        rs = self.db.execute("""
            MATCH (a:User {username: $username})-[:SIMILAR]-(b:UserConnection)-[:SIMILAR]-(c:User)
            WHERE a.username <> c.username
            RETURN b, c.username AS username, c.contactInfo AS contact_info
            ORDER BY b.date
        """, {"username": normalize_username(username)})
        return reconstruct_connections(rs)
