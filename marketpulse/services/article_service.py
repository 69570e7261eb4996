import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..errors import StoreError

logger = logging.getLogger(__name__)


class ArticleService:
    """Read-side queries over the stored articles of every source."""

    def __init__(self, store, sources):
        self.store = store
        self.sources = list(sources)

    def get_articles(self, source: Optional[str] = None, page=1, limit=20):
        """
        Retrieves a page of stored articles, newest first, from one source or
        merged across all sources.
        """
        sources = [source] if source else self.sources
        page = max(1, page)
        limit = max(1, min(limit, 100))
        try:
            if len(sources) == 1:
                articles = self.store.find_recent(sources[0], skip=(page - 1) * limit, limit=limit)
                total = self.store.count(sources[0])
            else:
                # Each source contributes at most page * limit rows to the merged page
                merged = []
                total = 0
                for name in sources:
                    merged.extend(self.store.find_recent(name, limit=page * limit))
                    total += self.store.count(name)
                merged.sort(key=lambda article: article.published_at, reverse=True)
                articles = merged[(page - 1) * limit:page * limit]
        except StoreError as e:
            logger.error(f"Error fetching articles: {e}")
            raise

        logger.info(f"Retrieved {len(articles)} articles (page {page}, limit {limit})")
        return {
            "articles": [article.to_response() for article in articles],
            "total_results": total,
            "page": page,
            "limit": limit,
        }

    def get_trending(self, hours=24, limit=10, now: Optional[datetime] = None):
        """Most frequent keywords among articles published in the last `hours`."""
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(hours=hours)
        counts = Counter()
        article_count = 0
        for name in self.sources:
            for article in self.store.find_recent(name, since=since):
                counts.update(article.keywords)
                article_count += 1

        logger.info(f"Computed trending keywords over {article_count} articles since {since.isoformat()}")
        return {
            "since": since.isoformat(),
            "article_count": article_count,
            "topics": [{"keyword": keyword, "count": count} for keyword, count in counts.most_common(limit)],
        }
