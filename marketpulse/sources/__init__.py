import logging
from typing import Dict

from .base import SourceAdapter
from .coingecko import CoinGeckoAdapter
from .guardian import GuardianAdapter
from .nytimes import NYTimesAdapter
from .reddit import RedditAdapter

logger = logging.getLogger(__name__)


def build_adapters(config) -> Dict[str, SourceAdapter]:
    """Instantiate an adapter for every source whose credentials are configured."""
    common = {
        'max_pages': config.MAX_PAGES,
        'timeout': config.REQUEST_TIMEOUT,
    }
    adapters = {}

    if config.GUARDIAN_API_KEY:
        adapters['guardian'] = GuardianAdapter(config.GUARDIAN_API_KEY, default_query=config.DEFAULT_QUERY, **common)
    else:
        logger.warning("GUARDIAN_API_KEY not set, guardian source disabled")

    if config.NYTIMES_API_KEY:
        adapters['nytimes'] = NYTimesAdapter(config.NYTIMES_API_KEY, default_query=config.DEFAULT_QUERY, **common)
    else:
        logger.warning("NYTIMES_API_KEY not set, nytimes source disabled")

    if config.REDDIT_CLIENT_ID and config.REDDIT_CLIENT_SECRET:
        adapters['reddit'] = RedditAdapter(
            config.REDDIT_CLIENT_ID,
            config.REDDIT_CLIENT_SECRET,
            config.REDDIT_USERNAME,
            config.REDDIT_PASSWORD,
            subreddits=config.REDDIT_SUBREDDITS,
            user_agent=config.REDDIT_USER_AGENT,
            default_query=config.DEFAULT_QUERY,
            **common,
        )
    else:
        logger.warning("Reddit client credentials not set, reddit source disabled")

    adapters['coingecko'] = CoinGeckoAdapter(config.COINGECKO_API_KEY, **common)

    logger.info(f"Registered sources: {', '.join(sorted(adapters))}")
    return adapters


__all__ = [
    'SourceAdapter', 'GuardianAdapter', 'NYTimesAdapter', 'RedditAdapter', 'CoinGeckoAdapter', 'build_adapters',
]
