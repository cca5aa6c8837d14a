"""
Sentiment analysis providers.

A provider turns entry text into topics with a polarity. The application
only depends on SentimentAnalyzer; MeaningCloudAnalyzer talks to the
MeaningCloud sentiment API (v2.1).
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

from dovetail.config_loader import AnalysisConfig
from dovetail.errors import AnalysisError
from dovetail.models import Sentiment, Topic

logger = logging.getLogger("dovetail.analysis")

# MeaningCloud score_tag -> Sentiment. "NONE" (no polarity) is dropped.
SCORE_TAGS = {
    "P": Sentiment.POSITIVE,
    "N": Sentiment.NEGATIVE,
    "NEU": Sentiment.NEUTRAL,
}


def normalize_score_tag(tag: str) -> Optional[Sentiment]:
    """Map a polarity tag to a Sentiment; the strong "+" variants collapse."""
    return SCORE_TAGS.get(tag.strip().upper().rstrip("+"))


class SentimentAnalyzer(ABC):
    @abstractmethod
    def analyze(self, text: str) -> list[Topic]:
        """Topics found in ``text`` with the sentiment each one carries."""
        ...


class MeaningCloudAnalyzer(SentimentAnalyzer):
    def __init__(self, config: AnalysisConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def analyze(self, text: str) -> list[Topic]:
        if not text.strip():
            return []
        try:
            resp = self.session.post(
                self.config.api_url,
                data={
                    "key": self.config.api_key,
                    "of": "json",
                    "txt": text,
                    "lang": self.config.language,
                },
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise AnalysisError(f"Sentiment service unreachable: {e}") from e

        if resp.status_code != 200:
            raise AnalysisError(f"Sentiment service returned {resp.status_code}: {resp.text[:200]}")

        try:
            body = resp.json()
        except ValueError as e:
            raise AnalysisError("Sentiment service returned a non-JSON body") from e

        status = body.get("status") or {}
        if str(status.get("code", "0")) != "0":
            raise AnalysisError(f"Sentiment service error: {status.get('msg', 'unknown')}")

        return self._topics(body.get("sentimented_concept_list") or [])

    def _topics(self, concepts: list[dict]) -> list[Topic]:
        topics = []
        seen = set()
        for concept in concepts:
            keyword = (concept.get("form") or "").strip().lower()
            sentiment = normalize_score_tag(concept.get("score_tag") or "")
            if not keyword or sentiment is None:
                logger.debug(f"Skipping concept {concept.get('form')!r} ({concept.get('score_tag')})")
                continue
            if (keyword, sentiment) in seen:
                continue
            seen.add((keyword, sentiment))
            topics.append(Topic(keyword=keyword, sentiment=sentiment))
        return topics
