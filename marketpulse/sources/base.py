import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Optional, Type
import requests
from requests.exceptions import RequestException
from pydantic import BaseModel, ValidationError

from ..errors import UpstreamError
from ..models.article import ArticleDraft
from ..utils.text_analysis import extract_hostname

logger = logging.getLogger(__name__)


class SourceAdapter:
    """
    Fetches every page of an upstream search and maps the records to ArticleDrafts.

    Subclasses implement fetch_page, total_pages and parse_page. Page 1 is
    requested first to learn the page count; the remaining pages are then
    requested concurrently and merged in page order. The first failing page
    aborts the whole fetch.
    """

    name: str = ""
    max_workers = 5

    def __init__(self, max_pages: int = 10, timeout: float = 15, default_query: Optional[str] = None):
        self.max_pages = max(1, max_pages)
        self.timeout = timeout
        self.default_query = default_query

    def fetch_page(self, page: int, query: Optional[str]) -> Any:
        raise NotImplementedError

    def total_pages(self, first_page: Any) -> int:
        raise NotImplementedError

    def parse_page(self, payload: Any) -> List[ArticleDraft]:
        raise NotImplementedError

    def fetch_all(self, query: Optional[str] = None) -> List[ArticleDraft]:
        query = query or self.default_query
        first = self.fetch_page(1, query)
        total = min(self.total_pages(first), self.max_pages)
        logger.info(f"[{self.name}] {total} page(s) to fetch for query '{query}'")

        pages = {1: first}
        if total > 1:
            pages.update(self._fetch_pages(range(2, total + 1), query))

        drafts = []
        for page in sorted(pages):
            drafts.extend(self.parse_page(pages[page]))
        logger.info(f"[{self.name}] Fetched {len(drafts)} articles from {len(pages)} page(s)")
        return drafts

    def _fetch_pages(self, page_numbers: Iterable[int], query: Optional[str]) -> Dict[int, Any]:
        page_numbers = list(page_numbers)
        results = {}
        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(page_numbers)))
        future_to_page = {executor.submit(self.fetch_page, page, query): page for page in page_numbers}
        try:
            for future in as_completed(future_to_page):
                results[future_to_page[future]] = future.result()
        except Exception as e:
            cancelled = sum(1 for future in future_to_page if future.cancel())
            logger.error(f"[{self.name}] Page fetch failed, cancelled {cancelled} pending page(s): {e}")
            raise
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return results

    def _get(self, url: str, schema: Type[BaseModel], params: Optional[dict] = None,
             headers: Optional[dict] = None) -> BaseModel:
        """GET a JSON document and validate it against the upstream schema."""
        try:
            response = requests.get(url, params=params, headers=headers, timeout=self.timeout)
        except RequestException as e:
            raise UpstreamError(self.name, f"Request to {url} failed: {e}") from e
        return self._validate(response, schema)

    def _validate(self, response, schema: Type[BaseModel]) -> BaseModel:
        if not response.ok:
            raise UpstreamError(self.name, f"HTTP {response.status_code} from {response.url}",
                                status_code=response.status_code)
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(self.name, f"Response from {response.url} is not JSON") from e
        try:
            return schema.model_validate(payload)
        except ValidationError as e:
            raise UpstreamError(self.name, f"Malformed response: {e.error_count()} validation error(s)") from e

    def _draft(self, title: Optional[str], url: Optional[str], published_at,
               body: Optional[str] = None) -> Optional[ArticleDraft]:
        if not url:
            logger.warning(f"[{self.name}] Skipping record without URL: {(title or '')[:50]}")
            return None
        return ArticleDraft(
            source=extract_hostname(url),
            title=title or "",
            url=url,
            published_at=published_at,
            body=body or None,
        )

    def __repr__(self):
        return f"<{type(self).__name__} name={self.name!r}>"
