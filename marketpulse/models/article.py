from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

MUTABLE_FIELDS = ('source', 'title', 'published_at', 'sentiment_score', 'keywords')


def normalize_timestamp(value: datetime) -> datetime:
    """UTC, millisecond precision: what MongoDB hands back for a stored datetime."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


class ArticleDraft(BaseModel):
    """Normalized record produced by a source adapter, before enrichment."""
    source: str
    title: str = ""
    url: str = Field(min_length=1)
    published_at: datetime
    body: Optional[str] = None

    @field_validator('published_at')
    @classmethod
    def _utc_millis(cls, value: datetime) -> datetime:
        return normalize_timestamp(value)

    @property
    def text(self) -> str:
        return " ".join(part for part in (self.title, self.body) if part)


class Article(BaseModel):
    source: str
    title: str = ""
    url: str = Field(min_length=1)
    published_at: datetime
    sentiment_score: float = 0.0
    keywords: List[str] = Field(default_factory=list)

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "source": "theguardian",
                "title": "Bitcoin price climbs as markets rally",
                "url": "https://www.theguardian.com/technology/2024/jan/01/bitcoin",
                "published_at": "2024-01-01T10:00:00Z",
                "sentiment_score": 0.25,
                "keywords": ["bitcoin", "price", "climbs", "markets", "rally"],
            }
        },
    )

    @field_validator('published_at')
    @classmethod
    def _utc_millis(cls, value: datetime) -> datetime:
        return normalize_timestamp(value)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Article":
        return cls.model_validate(document)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump()

    def differs_from(self, other: "Article") -> bool:
        """True when any field that may change between ingestions differs."""
        return any(getattr(self, name) != getattr(other, name) for name in MUTABLE_FIELDS)

    def to_response(self) -> Dict[str, Any]:
        payload = self.model_dump()
        payload['published_at'] = self.published_at.isoformat()
        return payload
