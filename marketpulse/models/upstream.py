"""
Response schemas for each upstream API. Payloads are validated here so that
malformed responses are rejected at the adapter boundary.
"""
import re
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, RootModel, field_validator

_COMPACT_OFFSET = re.compile(r'([+-]\d{2})(\d{2})$')


# The Guardian content API
class GuardianFields(BaseModel):
    trailText: Optional[str] = None


class GuardianResult(BaseModel):
    webUrl: str = ""
    webTitle: str = ""
    webPublicationDate: datetime
    fields: Optional[GuardianFields] = None


class GuardianPage(BaseModel):
    status: str
    pages: int = Field(ge=0)
    results: List[GuardianResult] = Field(default_factory=list)


class GuardianResponse(BaseModel):
    response: GuardianPage


# New York Times article search API
class NYTimesHeadline(BaseModel):
    main: Optional[str] = None


class NYTimesDoc(BaseModel):
    web_url: str = ""
    headline: NYTimesHeadline = Field(default_factory=NYTimesHeadline)
    pub_date: datetime
    abstract: Optional[str] = None
    lead_paragraph: Optional[str] = None

    @field_validator('pub_date', mode='before')
    @classmethod
    def _colon_offset(cls, value):
        # NYT sends offsets as +0000
        if isinstance(value, str):
            return _COMPACT_OFFSET.sub(r'\1:\2', value)
        return value


class NYTimesMeta(BaseModel):
    hits: int = Field(ge=0)


class NYTimesPage(BaseModel):
    docs: List[NYTimesDoc] = Field(default_factory=list)
    meta: NYTimesMeta


class NYTimesResponse(BaseModel):
    status: str = "OK"
    response: NYTimesPage


# Reddit OAuth API
class RedditToken(BaseModel):
    access_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: int = 3600
    error: Optional[str] = None


class RedditPost(BaseModel):
    title: str = ""
    url: str = ""
    permalink: str = ""
    created_utc: float
    selftext: str = ""


class RedditChild(BaseModel):
    kind: str
    data: RedditPost


class RedditListingData(BaseModel):
    children: List[RedditChild] = Field(default_factory=list)
    after: Optional[str] = None


class RedditListing(BaseModel):
    kind: str
    data: RedditListingData


# CoinGecko markets API
class CoinMarket(BaseModel):
    id: str
    symbol: str
    name: str
    current_price: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    last_updated: Optional[datetime] = None


class CoinMarketPage(RootModel[List[CoinMarket]]):
    pass
