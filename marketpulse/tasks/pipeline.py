import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from ..errors import MarketPulseError, PartialFailure, RunInProgress, UnknownSourceError
from ..models.article import Article, ArticleDraft
from ..utils.text_analysis import analyze_sentiment, extract_keywords

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    source: str
    inserted: List[Article] = field(default_factory=list)
    updated: List[Article] = field(default_factory=list)
    unchanged_count: int = 0

    @property
    def inserted_count(self) -> int:
        return len(self.inserted)

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "inserted_count": self.inserted_count,
            "updated_count": self.updated_count,
            "unchanged_count": self.unchanged_count,
            "articles": [article.to_response() for article in self.inserted + self.updated],
        }


@dataclass
class RunSummary:
    results: Dict[str, RunResult] = field(default_factory=dict)
    failures: Dict[str, PartialFailure] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def enrich(draft: ArticleDraft) -> Article:
    """Score a draft and attach its keywords."""
    text = draft.text
    return Article(
        source=draft.source,
        title=draft.title,
        url=draft.url,
        published_at=draft.published_at,
        sentiment_score=analyze_sentiment(text),
        keywords=extract_keywords(text),
    )


class Pipeline:
    """
    Fetch -> enrich -> dedup -> upsert for each registered source.

    Runs for different sources may proceed concurrently; a second run for a
    source that is already running is refused with RunInProgress.
    """

    def __init__(self, store, adapters: Dict[str, object], on_commit: Optional[Callable[[RunResult], None]] = None):
        self.store = store
        self.adapters = dict(adapters)
        # Called after a run has written at least one article
        self.on_commit = on_commit
        self._locks = {name: threading.Lock() for name in self.adapters}

    @property
    def sources(self) -> List[str]:
        return sorted(self.adapters)

    def is_running(self, source: str) -> bool:
        lock = self._locks.get(source)
        return lock is not None and lock.locked()

    def run(self, source: str, query: Optional[str] = None) -> RunResult:
        if source not in self.adapters:
            raise UnknownSourceError(source)
        lock = self._locks[source]
        if not lock.acquire(blocking=False):
            raise RunInProgress(source)
        try:
            return self._run(source, query)
        finally:
            lock.release()

    def _run(self, source: str, query: Optional[str]) -> RunResult:
        logger.info(f"Starting {source} pipeline run (query={query!r})")
        adapter = self.adapters[source]

        try:
            existing = {article.url: article for article in self.store.find_all(source)}
        except Exception as e:
            raise self._fail(source, "load", e) from e

        try:
            drafts = adapter.fetch_all(query)
        except Exception as e:
            raise self._fail(source, "fetch", e) from e

        try:
            enriched = self._enrich_batch(drafts)
        except Exception as e:
            raise self._fail(source, "enrich", e) from e

        result = RunResult(source=source)
        for article in enriched:
            stored = existing.get(article.url)
            if stored is None:
                result.inserted.append(article)
            elif article.differs_from(stored):
                result.updated.append(article)
            else:
                result.unchanged_count += 1

        to_write = result.inserted + result.updated
        if to_write:
            try:
                self.store.upsert_many(source, to_write)
            except Exception as e:
                raise self._fail(source, "upsert", e) from e
            if self.on_commit:
                self.on_commit(result)

        logger.info(f"{source} pipeline complete. Stats: fetched={len(drafts)}, "
                    f"inserted={result.inserted_count}, updated={result.updated_count}, "
                    f"unchanged={result.unchanged_count}")
        return result

    def _enrich_batch(self, drafts: Iterable[ArticleDraft]) -> List[Article]:
        # Pages can overlap when upstream results shift mid-fetch; last one wins
        by_url = {}
        for draft in drafts:
            by_url[draft.url] = enrich(draft)
        return list(by_url.values())

    def _fail(self, source: str, stage: str, error: Exception) -> PartialFailure:
        logger.error(f"{source} pipeline failed during {stage}: {error}", exc_info=not isinstance(error, MarketPulseError))
        return PartialFailure(source, stage, error)

    def run_all(self, sources: Optional[Iterable[str]] = None, query: Optional[str] = None) -> RunSummary:
        """Run each source in turn. A failed source never undoes another source's writes."""
        summary = RunSummary()
        for source in (list(sources) if sources else self.sources):
            try:
                summary.results[source] = self.run(source, query)
            except RunInProgress:
                logger.info(f"Skipping {source}: a run is already in progress")
                summary.skipped.append(source)
            except PartialFailure as e:
                summary.failures[source] = e
            except UnknownSourceError as e:
                logger.error(str(e))
                summary.failures[source] = PartialFailure(source, "dispatch", e)
        logger.info(f"Pipeline sweep finished: {len(summary.results)} succeeded, "
                    f"{len(summary.failures)} failed, {len(summary.skipped)} skipped")
        return summary
