"""Live FalkorDB tests for the graph repository (skip without FALKORDB_HOST).

Exercise the behaviour that only a real datastore can show: MERGE
idempotence, topic sharing across users, the one-week matching window and
the shape of the stored graph.

Set env vars to run:
    FALKORDB_HOST=localhost FALKORDB_PORT=6379 pytest dovetail/tests/test_falkordb_live.py -v
"""

import os
from datetime import date, datetime

import pytest

pytestmark = pytest.mark.skipif(
    not os.getenv("FALKORDB_HOST"),
    reason="FALKORDB_HOST not set; skipping live FalkorDB tests"
)

GRAPH_NAME = "__test_dovetail__"
NOW = 1_710_450_000


@pytest.fixture(scope="module")
def db():
    from dovetail.config_loader import DatabaseConfig
    from dovetail.database import GraphConnection

    conn = GraphConnection(DatabaseConfig(
        host=os.getenv("FALKORDB_HOST", "localhost"),
        port=int(os.getenv("FALKORDB_PORT", "6379")),
        password=os.getenv("FALKORDB_PASSWORD") or None,
        graph_name=GRAPH_NAME,
    ))
    conn.clear_graph()
    conn.ensure_schema()
    yield conn
    conn.clear_graph()
    conn.close()


@pytest.fixture
def repo(db):
    from dovetail.config_loader import SentimentLabels
    from dovetail.logic.user_repository import GraphUserRepository

    db.clear_graph()
    return GraphUserRepository(db, SentimentLabels(), clock=lambda: NOW)


def count(db, query, params=None):
    return db.execute(query, params).column("n")[0]


def make_entry(content, ts, *topics):
    from dovetail.models import JournalEntry, Sentiment, Topic

    return JournalEntry(
        content=content,
        date=datetime.fromtimestamp(ts),
        topics=[Topic(keyword=k, sentiment=Sentiment(s)) for k, s in topics],
    )


class TestSchema:
    def test_ensure_schema_is_repeatable(self, db):
        assert db.ensure_schema() == db.ensure_schema()

    def test_verify_connection(self, db):
        assert db.verify_connection()


class TestUsers:
    def test_create_and_read(self, repo):
        from dovetail.models import User

        assert repo.create_user(User(username="Ana", password_hash="h", salt="s", contact_info="@ana"))
        user = repo.get_user_by_username("ANA")
        assert user.username == "ana"
        assert user.contact_info == "@ana"

    def test_username_unique(self, repo, db):
        from dovetail.models import User

        assert repo.create_user(User(username="ana", password_hash="h1"))
        assert not repo.create_user(User(username="Ana", password_hash="h2"))
        assert count(db, "MATCH (u:User) RETURN count(u) AS n") == 1
        assert repo.get_user_by_username("ana").password_hash == "h1"

    def test_updates(self, repo):
        from dovetail.models import User

        repo.create_user(User(username="ana"))
        assert repo.update_user_contact_info("ana", "+1 555 0100")
        assert repo.update_user_password("ana", "h", "s")
        assert repo.get_user_by_username("ana").contact_info == "+1 555 0100"
        assert not repo.update_user_contact_info("ghost", "x")


class TestJournalEntries:
    def test_round_trip(self, repo):
        ts = NOW - 3600
        e = make_entry("long day", ts, ("work", "negative"), ("growth", "positive"))
        assert repo.add_journal_entry(e, "ana")

        view = repo.get_journal_entries(datetime.fromtimestamp(ts).date(), "ana")
        assert len(view) == 1
        got = view.entries[0]
        assert got.content == "long day"
        assert got.timestamp == ts
        assert sorted((t.keyword, t.sentiment.value) for t in got.topics) == [
            ("growth", "positive"), ("work", "negative"),
        ]

    def test_save_is_idempotent(self, repo, db):
        e = make_entry("same", NOW - 60, ("work", "negative"))
        repo.add_journal_entry(e, "ana")
        repo.add_journal_entry(e, "ana")

        assert count(db, "MATCH (j:JournalEntry) RETURN count(j) AS n") == 1
        assert count(db, "MATCH (:User)-[r:AUTHOR]->(:JournalEntry) RETURN count(r) AS n") == 1
        assert count(db, "MATCH (:JournalEntry)-[r]->(:Topic) RETURN count(r) AS n") == 1

    def test_topic_shared_across_users(self, repo, db):
        repo.add_journal_entry(make_entry("a", NOW - 60, ("Work", "negative")), "ana")
        repo.add_journal_entry(make_entry("b", NOW - 60, ("work", "positive")), "bea")
        assert count(db, "MATCH (t:Topic) RETURN count(t) AS n") == 1

    def test_other_days_excluded(self, repo):
        ts = NOW - 3600
        day = datetime.fromtimestamp(ts).date()
        repo.add_journal_entry(make_entry("today", ts), "ana")
        repo.add_journal_entry(make_entry("long ago", ts - 5 * 86400), "ana")
        repo.add_journal_entry(make_entry("someone else", ts), "bea")

        view = repo.get_journal_entries(day, "ana")
        assert [e.content for e in view.entries] == ["today"]
        assert len(repo.get_journal_entries(date(2000, 1, 1), "ana")) == 0

    def test_delete_keeps_topics(self, repo, db):
        e = make_entry("gone", NOW - 60, ("work", "negative"))
        repo.add_journal_entry(e, "ana")
        assert repo.delete_journal_entry(e, "ana")
        assert not repo.delete_journal_entry(e, "ana")
        assert count(db, "MATCH (j:JournalEntry) RETURN count(j) AS n") == 0
        assert count(db, "MATCH (t:Topic) RETURN count(t) AS n") == 1


class TestMatching:
    def test_same_sentiment_excludes_self_and_other_sentiments(self, repo):
        from dovetail.models import Sentiment

        repo.add_journal_entry(make_entry("a", NOW - 60, ("work", "negative")), "ana")
        repo.add_journal_entry(make_entry("b", NOW - 60, ("work", "negative")), "bea")
        repo.add_journal_entry(make_entry("c", NOW - 60, ("work", "positive")), "cy")

        matches = repo.get_same_sentiment_list("ana", Sentiment.NEGATIVE)
        assert [m.username for m in matches] == ["bea"]
        assert matches[0].topic.keyword == "work"
        assert matches[0].topic.sentiment is Sentiment.NEGATIVE

    def test_one_row_per_entry_pair(self, repo):
        from dovetail.models import Sentiment

        repo.add_journal_entry(make_entry("a", NOW - 60, ("work", "negative")), "ana")
        repo.add_journal_entry(make_entry("b1", NOW - 120, ("work", "negative")), "bea")
        repo.add_journal_entry(make_entry("b2", NOW - 180, ("work", "negative")), "bea")
        assert len(repo.get_same_sentiment_list("ana", Sentiment.NEGATIVE)) == 2

    def test_week_boundary_is_exclusive(self, repo):
        from dovetail.models import Sentiment

        week = 604800
        repo.add_journal_entry(make_entry("a", NOW - 60, ("work", "negative")), "ana")
        repo.add_journal_entry(make_entry("edge", NOW - week, ("work", "negative")), "bea")
        assert repo.get_same_sentiment_list("ana", Sentiment.NEGATIVE) == []

        repo.add_journal_entry(make_entry("inside", NOW - week + 1, ("work", "negative")), "bea")
        assert len(repo.get_same_sentiment_list("ana", Sentiment.NEGATIVE)) == 1

    def test_connections_listed_for_both_users(self, repo, db):
        from dovetail.models import Sentiment, Topic, User, UserContact

        repo.create_user(User(username="bea", contact_info="@bea"))
        contact = UserContact(
            username="bea", guid="g-1", topic=Topic(keyword="work", sentiment=Sentiment.NEGATIVE),
        )
        assert repo.create_new_user_contact("ana", contact)

        mine = repo.get_user_contact_relationships("ana")
        assert [(c.username, c.guid, c.contact_info) for c in mine] == [("bea", "g-1", "@bea")]
        assert mine[0].topic == contact.topic
        assert [c.username for c in repo.get_user_contact_relationships("bea")] == ["ana"]

        repo.create_new_user_contact("ana", contact)
        assert count(db, "MATCH (b:UserConnection) RETURN count(b) AS n") == 2

    def test_one_row_per_shared_topic(self, repo):
        from dovetail.models import Sentiment

        repo.add_journal_entry(
            make_entry("a", NOW - 60, ("focus", "positive"), ("growth", "positive")), "ana")
        repo.add_journal_entry(
            make_entry("b", NOW - 120, ("focus", "positive"), ("growth", "positive")), "bea")

        matches = repo.get_same_sentiment_list("ana", Sentiment.POSITIVE)
        assert len(matches) == 2
        assert [m.username for m in matches] == ["bea", "bea"]
        assert sorted(m.topic.keyword for m in matches) == ["focus", "growth"]

    def test_own_matching_entries_never_returned(self, repo):
        from dovetail.models import Sentiment

        repo.add_journal_entry(make_entry("a1", NOW - 60, ("work", "negative")), "ana")
        repo.add_journal_entry(make_entry("a2", NOW - 120, ("work", "negative")), "ana")
        assert repo.get_same_sentiment_list("ana", Sentiment.NEGATIVE) == []

        repo.add_journal_entry(make_entry("b", NOW - 180, ("work", "negative")), "bea")
        matches = repo.get_same_sentiment_list("ana", Sentiment.NEGATIVE)
        assert "ana" not in [m.username for m in matches]
        assert [m.username for m in matches] == ["bea", "bea"]
