"""Pydantic schemas for users, journal entries, topics and matches."""

from dataclasses import dataclass
from datetime import date as Date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from dovetail.logic.user_repository import UserRepository


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


def normalize_username(username: str) -> str:
    """Case-fold a username; every read and write goes through this."""
    return username.strip().lower()


def normalize_keyword(keyword: str) -> str:
    return keyword.strip().lower()


# ========================================
# Graph entities
# ========================================

class Topic(BaseModel):
    """A keyword and the sentiment it carried in one journal entry."""
    keyword: str
    sentiment: Sentiment

    @field_validator("keyword")
    @classmethod
    def _fold_keyword(cls, value: str) -> str:
        return normalize_keyword(value)


class User(BaseModel):
    """User node. ``password_hash`` and ``salt`` are stored as given."""
    username: str
    password_hash: str = ""
    salt: str = ""
    contact_info: str = ""

    @field_validator("username")
    @classmethod
    def _fold_username(cls, value: str) -> str:
        return normalize_username(value)


class JournalEntry(BaseModel):
    """A journal entry. Identity in the graph is (timestamp, content)."""
    content: str
    date: datetime
    topics: list[Topic] = Field(default_factory=list)

    @property
    def timestamp(self) -> int:
        """Entry date as Unix seconds, the form stored in the graph."""
        return int(self.date.timestamp())

    def render(self) -> str:
        lines = [
            f"Date of entry: {self.date:%m/%d/%Y}",
            "",
            "Entry:",
            f"\t{self.content}",
            "",
            "Topics and sentiments identified:",
        ]
        if not self.topics:
            lines.append("\tNo topics and sentiments identified for this entry.")
        for topic in self.topics:
            lines.append(f"\t{topic.keyword}: {topic.sentiment.value}")
        return "\n".join(lines) + "\n"


class UserContact(BaseModel):
    """Another user matched over a shared topic, optionally with a match token."""
    username: str
    contact_info: str = ""
    topic: Optional[Topic] = None
    guid: Optional[str] = None
    date: Optional[datetime] = None


# ========================================
# Journal entry views (single entry or a day's collection)
# ========================================

class SingleEntryView(BaseModel):
    """One freshly written entry."""
    kind: Literal["single"] = "single"
    entry: JournalEntry

    def __len__(self) -> int:
        return 1

    def render(self) -> str:
        return self.entry.render()

    def save(self, repo: "UserRepository", username: str) -> bool:
        return repo.add_journal_entry(self.entry, username)

    def delete(self, repo: "UserRepository", username: str, index: int = 0) -> bool:
        if index != 0:
            raise IndexError(f"entry index {index} out of range")
        return repo.delete_journal_entry(self.entry, username)


class EntryCollectionView(BaseModel):
    """All entries a user wrote on one day."""
    kind: Literal["collection"] = "collection"
    date: Date
    entries: list[JournalEntry] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def render(self) -> str:
        text = f"Journal entries made on this date : {self.date:%m/%d/%Y}\n\n"
        if not self.entries:
            return text + "There were no journal entries made by you on this date.\n"
        for i, entry in enumerate(self.entries, start=1):
            text += f"Journal Entry #{i}:\n{entry.render()}\n"
        return text

    def save(self, repo: "UserRepository", username: str) -> bool:
        """Save every entry; True only if all of them were saved."""
        results = [repo.add_journal_entry(entry, username) for entry in self.entries]
        return all(results)

    def delete(self, repo: "UserRepository", username: str, index: int = 0) -> bool:
        if not 0 <= index < len(self.entries):
            raise IndexError(f"entry index {index} out of range")
        return repo.delete_journal_entry(self.entries[index], username)


JournalEntryView = Union[SingleEntryView, EntryCollectionView]


# ========================================
# Operation results
# ========================================

class ErrorKind(str, Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    USERNAME_TAKEN = "username_taken"
    INVALID_CREDENTIALS = "invalid_credentials"
    WRITE_FAILED = "write_failed"
    INDEX_OUT_OF_RANGE = "index_out_of_range"


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str = ""

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[Any], Err]
