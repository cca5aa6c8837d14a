"""Rebuild journal entries and contacts from flattened query results.

An entry with N topics comes back as N rows, the entry's own cell repeated
on each row next to one topic. An entry with no topics comes back as one
row whose topic columns are all null.

    j            positive     negative     neutral
    {e1}         {work}       null         null
    {e1}         null         {sleep}      null
    {e2}         null         null         null

Rows are grouped by entry identity (date + content) rather than by
adjacency alone, so the result stays correct even if the datastore does
not keep one entry's rows contiguous.
"""

from datetime import date as Date, datetime
from typing import Optional

from dovetail.db_result_helpers import ResultSet
from dovetail.errors import IntegrityError
from dovetail.models import (
    EntryCollectionView,
    JournalEntry,
    Sentiment,
    Topic,
    UserContact,
)

# Column names the repository queries return.
ENTRY_COLUMN = "j"
SENTIMENT_COLUMNS = {
    Sentiment.POSITIVE: "positive",
    Sentiment.NEGATIVE: "negative",
    Sentiment.NEUTRAL: "neutral",
}


def from_timestamp(seconds) -> datetime:
    """Stored Unix seconds -> local datetime."""
    return datetime.fromtimestamp(int(seconds))


def _node_property(node, key: str, column: str):
    if not isinstance(node, dict):
        raise IntegrityError(f"Column '{column}' holds {type(node).__name__}, expected a node")
    if key not in node:
        raise IntegrityError(f"Node in column '{column}' has no '{key}' property")
    return node[key]


def _stored_sentiment(value) -> Sentiment:
    try:
        return Sentiment(value)
    except ValueError as e:
        raise IntegrityError(f"Stored sentiment {value!r} is not a known sentiment") from e


def _row_topic(row: dict, row_index: int) -> Optional[Topic]:
    """The topic a row carries, or None for an entry without topics."""
    present = [
        (sentiment, row[column])
        for sentiment, column in SENTIMENT_COLUMNS.items()
        if row.get(column) is not None
    ]
    if not present:
        return None
    if len(present) > 1:
        names = [s.value for s, _ in present]
        raise IntegrityError(f"Row {row_index} has a topic under several sentiments: {names}")
    sentiment, node = present[0]
    keyword = _node_property(node, "keyword", SENTIMENT_COLUMNS[sentiment])
    return Topic(keyword=keyword, sentiment=sentiment)


def reconstruct_journal_entries(rs: ResultSet, day: Date) -> EntryCollectionView:
    """Collapse (entry x topic) rows into entries, in first-encounter order.

    Args:
        rs: Result with an entry column ``j`` and the three sentiment columns.
        day: The day that was queried; recorded on the collection.

    Raises:
        IntegrityError: A row has more than one sentiment column set, or a
            node lacks the expected properties.
    """
    collection = EntryCollectionView(date=day)
    by_identity: dict[tuple, JournalEntry] = {}

    for i, row in enumerate(rs.rows()):
        node = row.get(ENTRY_COLUMN)
        if node is None:
            # OPTIONAL MATCH found no entry for the user on this day
            continue

        timestamp = int(_node_property(node, "date", ENTRY_COLUMN))
        content = _node_property(node, "content", ENTRY_COLUMN)
        identity = (timestamp, content)

        entry = by_identity.get(identity)
        if entry is None:
            entry = JournalEntry(content=content, date=from_timestamp(timestamp))
            by_identity[identity] = entry
            collection.entries.append(entry)

        topic = _row_topic(row, i)
        if topic is not None and topic not in entry.topics:
            entry.topics.append(topic)

    return collection


def reconstruct_same_sentiment(rs: ResultSet, sentiment: Sentiment) -> list[UserContact]:
    """One UserContact per row; rows are never merged."""
    contacts = []
    for row in rs.rows():
        topic_node = row.get("t")
        contacts.append(UserContact(
            username=row["username"],
            contact_info=row.get("contact_info") or "",
            topic=Topic(
                keyword=_node_property(topic_node, "keyword", "t"),
                sentiment=sentiment,
            ),
        ))
    return contacts


def reconstruct_connections(rs: ResultSet) -> list[UserContact]:
    """One UserContact per UserConnection row, naming the other user."""
    contacts = []
    for row in rs.rows():
        connection = row.get("b")
        date = connection.get("date") if isinstance(connection, dict) else None
        contacts.append(UserContact(
            username=row["username"],
            contact_info=row.get("contact_info") or "",
            guid=_node_property(connection, "guid", "b"),
            date=from_timestamp(date) if date is not None else None,
            topic=Topic(
                keyword=_node_property(connection, "topic", "b"),
                sentiment=_stored_sentiment(_node_property(connection, "sentiment", "b")),
            ),
        ))
    return contacts
