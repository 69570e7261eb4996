from datetime import datetime, timezone
from typing import List, Optional

from ..models.article import ArticleDraft
from ..models.upstream import CoinMarketPage
from .base import SourceAdapter

BASE_URL = 'https://api.coingecko.com/api/v3/coins/markets'
COIN_PAGE_URL = 'https://www.coingecko.com/en/coins/{coin_id}'


def ticker_headline(name: str, symbol: str, price: Optional[float], change: Optional[float]) -> str:
    headline = f"{name} ({symbol.upper()})"
    if price is not None:
        headline += f" trades at ${price:,.2f}"
    if change is not None:
        direction = "up" if change >= 0 else "down"
        headline += f", {direction} {abs(change):.2f}% in 24 hours"
    return headline


class CoinGeckoAdapter(SourceAdapter):
    """
    Price ticker. The markets endpoint carries no page-count metadata: a full
    first page means more pages may follow, up to max_pages.
    """

    name = 'coingecko'

    def __init__(self, api_key: Optional[str] = None, vs_currency: str = 'usd', per_page: int = 100, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.vs_currency = vs_currency
        self.per_page = per_page

    def fetch_page(self, page: int, query: Optional[str]) -> CoinMarketPage:
        params = {
            'vs_currency': self.vs_currency,
            'order': 'market_cap_desc',
            'per_page': self.per_page,
            'page': page,
        }
        # A query narrows the ticker to a comma separated list of coin ids
        if query:
            params['ids'] = query
        headers = {'x-cg-demo-api-key': self.api_key} if self.api_key else None
        return self._get(BASE_URL, CoinMarketPage, params=params, headers=headers)

    def total_pages(self, first_page: CoinMarketPage) -> int:
        return self.max_pages if len(first_page.root) >= self.per_page else 1

    def parse_page(self, payload: CoinMarketPage) -> List[ArticleDraft]:
        drafts = []
        for coin in payload.root:
            title = ticker_headline(coin.name, coin.symbol, coin.current_price, coin.price_change_percentage_24h)
            published_at = coin.last_updated or datetime.now(timezone.utc)
            draft = self._draft(title, COIN_PAGE_URL.format(coin_id=coin.id), published_at)
            if draft:
                drafts.append(draft)
        return drafts
