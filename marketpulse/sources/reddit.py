import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import requests
from requests.exceptions import RequestException
from pydantic import ValidationError

from ..errors import AuthError, UpstreamError
from ..models.article import ArticleDraft
from ..models.upstream import RedditListing, RedditToken
from .base import SourceAdapter

logger = logging.getLogger(__name__)

TOKEN_URL = 'https://www.reddit.com/api/v1/access_token'
API_URL = 'https://oauth.reddit.com'
TOKEN_EXPIRY_MARGIN_SECONDS = 60


@dataclass
class AccessToken:
    value: str
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        return now >= self.expires_at - TOKEN_EXPIRY_MARGIN_SECONDS


class RedditAdapter(SourceAdapter):
    """
    Reddit search over a fixed list of subreddits.

    Reddit listings are cursor-paginated, so one "page" here is the search
    listing of one configured subreddit; all subreddits after the first are
    searched concurrently. A bearer token is obtained before any listing is
    requested, through the client credentials grant (or the password grant
    when a username and password are configured), and is refreshed once it
    expires.
    """

    name = 'reddit'

    def __init__(self, client_id: str, client_secret: str, username: str, password: str,
                 subreddits: Sequence[str], user_agent: str = 'marketpulse/0.1',
                 listing_limit: int = 100, **kwargs):
        super().__init__(**kwargs)
        self.client_id = client_id
        self.client_secret = client_secret
        self.username = username
        self.password = password
        self.subreddits = list(subreddits)
        self.user_agent = user_agent
        self.listing_limit = listing_limit
        self._token: Optional[AccessToken] = None
        self._token_lock = threading.Lock()

    def get_access_token(self) -> str:
        with self._token_lock:
            if self._token is None or self._token.is_expired():
                self._token = self._exchange_token()
            return self._token.value

    def invalidate_token(self):
        with self._token_lock:
            self._token = None

    def _exchange_token(self) -> AccessToken:
        if self.username and self.password:
            data = {'grant_type': 'password', 'username': self.username, 'password': self.password}
        else:
            data = {'grant_type': 'client_credentials'}
        try:
            response = requests.post(
                TOKEN_URL,
                data=data,
                auth=(self.client_id, self.client_secret),
                headers={'User-Agent': self.user_agent},
                timeout=self.timeout,
            )
        except RequestException as e:
            raise AuthError(self.name, f"Token request failed: {e}") from e

        if not response.ok:
            raise AuthError(self.name, f"Token request rejected with HTTP {response.status_code}",
                            status_code=response.status_code)
        try:
            token = RedditToken.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise AuthError(self.name, "Token response is malformed") from e
        if token.error or not token.access_token:
            raise AuthError(self.name, f"Token exchange refused: {token.error or 'no access_token'}")

        logger.info(f"[{self.name}] Obtained access token valid for {token.expires_in}s")
        return AccessToken(value=token.access_token, expires_at=time.monotonic() + token.expires_in)

    def fetch_all(self, query: Optional[str] = None) -> List[ArticleDraft]:
        if not self.subreddits:
            logger.warning(f"[{self.name}] No subreddits configured")
            return []
        # Fail fast on bad credentials before any listing is requested
        self.get_access_token()
        return super().fetch_all(query)

    def fetch_page(self, page: int, query: Optional[str]) -> RedditListing:
        subreddit = self.subreddits[page - 1]
        headers = {
            'Authorization': f"Bearer {self.get_access_token()}",
            'User-Agent': self.user_agent,
        }
        params = {'q': query, 'restrict_sr': 1, 'sort': 'new', 'limit': self.listing_limit}
        try:
            return self._get(f"{API_URL}/r/{subreddit}/search", RedditListing, params=params, headers=headers)
        except UpstreamError as e:
            if e.status_code == 401:
                self.invalidate_token()
            raise

    def total_pages(self, first_page: RedditListing) -> int:
        if len(self.subreddits) > self.max_pages:
            skipped = self.subreddits[self.max_pages:]
            logger.warning(f"[{self.name}] MAX_PAGES={self.max_pages} limits the search to the first "
                           f"{self.max_pages} subreddits, skipping: {', '.join(skipped)}")
        return len(self.subreddits)

    def parse_page(self, payload: RedditListing) -> List[ArticleDraft]:
        drafts = []
        for child in payload.data.children:
            post = child.data
            url = post.url or (f"https://www.reddit.com{post.permalink}" if post.permalink else "")
            published_at = datetime.fromtimestamp(post.created_utc, tz=timezone.utc)
            draft = self._draft(post.title, url, published_at, post.selftext)
            if draft:
                drafts.append(draft)
        return drafts
