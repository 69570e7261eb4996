import math
from typing import List, Optional

from ..models.article import ArticleDraft
from ..models.upstream import NYTimesResponse
from .base import SourceAdapter

BASE_URL = 'https://api.nytimes.com/svc/search/v2/articlesearch.json'
DOCS_PER_PAGE = 10
# The article search API refuses page numbers above 100
MAX_API_PAGES = 100


class NYTimesAdapter(SourceAdapter):
    name = 'nytimes'
    # NYT throttles aggressively on concurrent requests
    max_workers = 2

    def __init__(self, api_key: str, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    def fetch_page(self, page: int, query: Optional[str]) -> NYTimesResponse:
        params = {'q': query, 'page': page - 1, 'sort': 'newest', 'api-key': self.api_key}
        return self._get(BASE_URL, NYTimesResponse, params=params)

    def total_pages(self, first_page: NYTimesResponse) -> int:
        hits = first_page.response.meta.hits
        return min(math.ceil(hits / DOCS_PER_PAGE), MAX_API_PAGES)

    def parse_page(self, payload: NYTimesResponse) -> List[ArticleDraft]:
        drafts = []
        for doc in payload.response.docs:
            draft = self._draft(doc.headline.main, doc.web_url, doc.pub_date,
                                doc.abstract or doc.lead_paragraph)
            if draft:
                drafts.append(draft)
        return drafts
