"""Exception taxonomy for the journaling core.

Hard failures (datastore unreachable, rejected query, corrupted result shape)
are raised. Logical failures of a write ("ran, had no effect") are reported
as ``False`` by the repository and as ``Err`` by the user session.
"""


class DovetailError(Exception):
    """Base class for every error raised by this package."""


class DatastoreConnectionError(DovetailError):
    """The graph datastore could not be reached."""


class QueryError(DovetailError):
    """The datastore rejected a query (malformed Cypher or bad parameters)."""

    def __init__(self, message: str, query: str = ""):
        super().__init__(message)
        self.query = query


class IntegrityError(DovetailError):
    """A uniqueness or result-shape invariant was violated on read."""


class AnalysisError(DovetailError):
    """The sentiment analysis service failed or returned an unusable body."""


class ConfigError(DovetailError):
    """The configuration file is missing required values or is invalid."""
