"""Wiring: build each component once and hand it to the ones that need it."""

import logging
from dataclasses import dataclass
from typing import Optional

from dovetail.analysis import MeaningCloudAnalyzer, SentimentAnalyzer
from dovetail.config_loader import AppConfig, get_config
from dovetail.database import GraphConnection
from dovetail.logic.matching import MatchingEngine
from dovetail.logic.repository_proxy import LoggingUserRepository
from dovetail.logic.user_repository import GraphUserRepository, UserRepository
from dovetail.logic.user_session import UserSession

logger = logging.getLogger("dovetail")


@dataclass
class AppContext:
    config: AppConfig
    db: GraphConnection
    repository: UserRepository
    matching: MatchingEngine
    analyzer: SentimentAnalyzer

    def new_session(self) -> UserSession:
        return UserSession(self.repository, self.analyzer, matching=self.matching)

    def close(self):
        self.db.close()


def create_app_context(config: Optional[AppConfig] = None,
                       db: Optional[GraphConnection] = None,
                       analyzer: Optional[SentimentAnalyzer] = None,
                       init_schema: bool = True) -> AppContext:
    """Create the shared connection and the components built on it.

    Call once at startup; the returned context owns the connection.
    """
    config = config or get_config()
    db = db or GraphConnection(config.database)
    if init_schema:
        db.ensure_schema()

    logger.info(f"Journaling core ready (graph '{db.graph_name}')")
    repository = LoggingUserRepository(GraphUserRepository(db, config.sentiment), db)
    return AppContext(
        config=config,
        db=db,
        repository=repository,
        matching=MatchingEngine(repository),
        analyzer=analyzer or MeaningCloudAnalyzer(config.analysis),
    )
