import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from pymongo import ASCENDING, DESCENDING, MongoClient, UpdateOne
from pymongo.errors import ConnectionFailure, PyMongoError

from .errors import StoreError, UnknownSourceError
from .models.article import Article

logger = logging.getLogger(__name__)


@dataclass
class UpsertResult:
    inserted: int = 0
    modified: int = 0


class ArticleStore:
    """
    Facade over the MongoDB document store. Each source owns one collection,
    keyed by article url through a unique index.
    """

    def __init__(self, mongo_uri: str, db_name: str, collections: Dict[str, str],
                 client: Optional[MongoClient] = None):
        self.mongo_uri = mongo_uri
        self.db_name = db_name
        self.collections = dict(collections)
        self.client = client
        self._db = client[db_name] if client is not None else None

    def connect(self) -> "ArticleStore":
        """Open the connection, verify it with a ping, and ensure indexes exist."""
        try:
            if self.client is None:
                self.client = MongoClient(self.mongo_uri, serverSelectionTimeoutMS=5000, tz_aware=True)
            self._db = self.client[self.db_name]
            self.client.admin.command('ping')
            logger.info(f"Successfully connected to MongoDB database '{self.db_name}'")
            self.ensure_indexes()
        except ConnectionFailure as e:
            raise StoreError(f"Could not connect to MongoDB: {e}") from e
        except PyMongoError as e:
            raise StoreError(f"Unexpected error initialising MongoDB: {e}") from e
        return self

    def ensure_indexes(self):
        for source in self.collections:
            collection = self.collection(source)
            collection.create_index([("url", ASCENDING)], unique=True, name="url_unique")
            collection.create_index([("published_at", DESCENDING)], name="published_at_desc")

    def close(self):
        if self.client is not None:
            self.client.close()
            self.client = None
            self._db = None
            logger.info("Database connection closed")

    def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            self.client.admin.command('ping')
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def collection(self, source: str):
        if self._db is None:
            raise StoreError("Store is not connected")
        if source not in self.collections:
            raise UnknownSourceError(source)
        return self._db[self.collections[source]]

    def find_all(self, source: str) -> List[Article]:
        try:
            documents = self.collection(source).find({}, {"_id": 0})
            return [Article.from_document(doc) for doc in documents]
        except PyMongoError as e:
            raise StoreError(f"Failed to read {source} articles: {e}") from e

    def upsert_many(self, source: str, articles: Iterable[Article]) -> UpsertResult:
        """Insert-or-update every article keyed by url, as one unordered bulk write."""
        now = datetime.now(timezone.utc)
        operations = []
        for article in articles:
            document = article.to_document()
            url = document.pop("url")
            operations.append(UpdateOne(
                {"url": url},
                {"$set": document, "$setOnInsert": {"first_seen_at": now}},
                upsert=True,
            ))
        if not operations:
            return UpsertResult()

        try:
            result = self.collection(source).bulk_write(operations, ordered=False)
        except PyMongoError as e:
            raise StoreError(f"Failed to upsert {len(operations)} {source} articles: {e}") from e
        logger.info(f"Upserted {len(operations)} {source} articles "
                    f"({result.upserted_count} inserted, {result.modified_count} modified)")
        return UpsertResult(inserted=result.upserted_count, modified=result.modified_count)

    def find_recent(self, source: str, since: Optional[datetime] = None,
                    limit: int = 0, skip: int = 0) -> List[Article]:
        """Articles newest first, optionally restricted to those published after `since`."""
        query = {"published_at": {"$gte": since}} if since else {}
        try:
            cursor = self.collection(source).find(query, {"_id": 0}) \
                .sort("published_at", DESCENDING) \
                .skip(skip) \
                .limit(limit)
            return [Article.from_document(doc) for doc in cursor]
        except PyMongoError as e:
            raise StoreError(f"Failed to query recent {source} articles: {e}") from e

    def count(self, source: str) -> int:
        try:
            return self.collection(source).count_documents({})
        except PyMongoError as e:
            raise StoreError(f"Failed to count {source} articles: {e}") from e
