from typing import List, Optional

from ..errors import UpstreamError
from ..models.article import ArticleDraft
from ..models.upstream import GuardianResponse
from .base import SourceAdapter

BASE_URL = 'https://content.guardianapis.com/search'


class GuardianAdapter(SourceAdapter):
    """The Guardian content search API."""

    name = 'guardian'

    def __init__(self, api_key: str, page_size: int = 200, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.page_size = page_size

    def fetch_page(self, page: int, query: Optional[str]) -> GuardianResponse:
        params = {
            'q': query,
            'page-size': self.page_size,
            'page': page,
            'show-fields': 'trailText',
            'api-key': self.api_key,
        }
        result = self._get(BASE_URL, GuardianResponse, params=params)
        if result.response.status != 'ok':
            raise UpstreamError(self.name, f"API status '{result.response.status}' for page {page}")
        return result

    def total_pages(self, first_page: GuardianResponse) -> int:
        return first_page.response.pages

    def parse_page(self, payload: GuardianResponse) -> List[ArticleDraft]:
        drafts = []
        for item in payload.response.results:
            body = item.fields.trailText if item.fields else None
            draft = self._draft(item.webTitle, item.webUrl, item.webPublicationDate, body)
            if draft:
                drafts.append(draft)
        return drafts
