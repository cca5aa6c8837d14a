"""Shared fixtures for the journaling test suite.

The GraphConnection is mocked: ``execute`` calls can be inspected and
their return values set per test.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from dovetail.config_loader import SentimentLabels
from dovetail.db_result_helpers import ResultSet
from dovetail.logic.user_repository import GraphUserRepository
from dovetail.models import JournalEntry, Sentiment, Topic


@pytest.fixture
def labels():
    return SentimentLabels()


@pytest.fixture
def mock_db():
    """GraphConnection stand-in; execute() returns an empty ResultSet by default."""
    db = MagicMock()
    db.execute.return_value = ResultSet()
    db.graph_name = "test"
    return db


@pytest.fixture
def fixed_now():
    return 1_700_000_000


@pytest.fixture
def repo(mock_db, labels, fixed_now):
    return GraphUserRepository(mock_db, labels, clock=lambda: fixed_now)


@pytest.fixture
def sample_entry():
    return JournalEntry(
        content="Long day at work, but the new project feels like growth.",
        date=datetime(2024, 3, 14, 21, 30, 5),
        topics=[
            Topic(keyword="Work", sentiment=Sentiment.NEGATIVE),
            Topic(keyword="growth", sentiment=Sentiment.POSITIVE),
        ],
    )
