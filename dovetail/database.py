"""FalkorDB connection and query executor.

One GraphConnection is built at startup and passed to every component that
talks to the datastore. The driver is created lazily on first use; a lock
makes sure concurrent first callers end up sharing a single client.
"""

import logging
import threading
import time
from typing import Optional

from falkordb import FalkorDB
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from dovetail.config_loader import DatabaseConfig
from dovetail.db_result_helpers import ResultSet, to_result_set
from dovetail.errors import DatastoreConnectionError, QueryError

logger = logging.getLogger("dovetail.database")


# Schema: (label, property) pairs that must be unique, and extra range indexes.
UNIQUE_PROPERTIES = [
    ("User", "username"),
    ("Topic", "keyword"),
]
RANGE_INDEXES = [
    ("JournalEntry", "date"),
    ("UserConnection", "guid"),
]


class GraphConnection:
    """Shared handle to one FalkorDB graph."""

    def __init__(self, config: Optional[DatabaseConfig] = None, client_factory=FalkorDB):
        config = config or DatabaseConfig()
        self.host = config.host
        self.port = config.port
        self.password = config.password
        self.graph_name = config.graph_name
        self._client_factory = client_factory
        self._db = None
        self._graph = None
        self._lock = threading.Lock()

    def connect(self):
        """Return the selected graph, creating the client on first call."""
        if self._graph is None:
            with self._lock:
                if self._graph is None:
                    logger.info(f"Connecting to FalkorDB at {self.host}:{self.port} (graph '{self.graph_name}')")
                    try:
                        self._db = self._client_factory(
                            host=self.host, port=self.port, password=self.password
                        )
                        self._graph = self._db.select_graph(self.graph_name)
                    except (RedisConnectionError, RedisTimeoutError) as e:
                        raise DatastoreConnectionError(
                            f"Cannot connect to FalkorDB at {self.host}:{self.port}: {e}"
                        ) from e
        return self._graph

    @property
    def graph(self):
        return self.connect()

    def close(self):
        with self._lock:
            if self._db is not None:
                connection = getattr(self._db, "connection", None)
                if connection is not None:
                    connection.close()
            self._db = None
            self._graph = None

    def execute(self, query: str, params: Optional[dict] = None) -> ResultSet:
        """Run a parameterized Cypher query and return its columnar result.

        Args:
            query: Cypher text. Only quoted relationship type labels may be
                inlined; every value goes through ``params``.
            params: Named parameters bound by the driver.

        Raises:
            DatastoreConnectionError: The datastore is unreachable.
            QueryError: The datastore rejected the query.
        """
        graph = self.connect()
        t = time.perf_counter()
        try:
            result = graph.query(query, params=params or {})
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error(f"FalkorDB unreachable: {e}")
            raise DatastoreConnectionError(str(e)) from e
        except ResponseError as e:
            logger.error(f"FalkorDB rejected query: {e}")
            raise QueryError(str(e), query=query) from e
        logger.debug(f"Query ran in {(time.perf_counter() - t) * 1000:.1f}ms")
        return to_result_set(result)

    def verify_connection(self) -> bool:
        """Verify the connection with a trivial query."""
        rs = self.execute("RETURN 1 AS test")
        return rs.column("test") == [1]

    def clear_graph(self):
        """Delete all nodes and relationships from the graph."""
        self.execute("MATCH (n) DETACH DELETE n")

    def ensure_schema(self) -> list[str]:
        """Create range indexes and unique constraints; safe to call repeatedly.

        The unique constraint on Topic.keyword is what keeps concurrent
        MERGEs from creating two nodes for the same keyword.

        Returns:
            Names of the schema items created or already present.
        """
        graph = self.connect()
        created = []

        for label, prop in UNIQUE_PROPERTIES + RANGE_INDEXES:
            name = f"{label}.{prop}"
            try:
                graph.query(f"CREATE INDEX FOR (n:{label}) ON (n.{prop})")
                logger.info(f"Created index {name}")
            except ResponseError as e:
                if "already indexed" not in str(e).lower() and "already exists" not in str(e).lower():
                    raise QueryError(f"Index {name}: {e}") from e
            created.append(f"index:{name}")

        for label, prop in UNIQUE_PROPERTIES:
            name = f"{label}.{prop}"
            try:
                graph.create_node_unique_constraint(label, prop)
                logger.info(f"Created unique constraint {name}")
            except ResponseError as e:
                if "already exists" not in str(e).lower():
                    raise QueryError(f"Constraint {name}: {e}") from e
            created.append(f"unique:{name}")

        return created
