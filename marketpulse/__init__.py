from flask import Flask
import logging

from .database import ArticleStore
from .errors import StoreError
from .services.article_service import ArticleService
from .sources import build_adapters
from .tasks.pipeline import Pipeline
from .utils.cache import TTLCache


def init_store(app) -> ArticleStore:
    """Connect to MongoDB. A store that cannot be reached is fatal."""
    store = ArticleStore(
        app.config['MONGO_URI'],
        app.config['MONGO_DB_NAME'],
        app.config['COLLECTIONS'],
    )
    try:
        return store.connect()
    except StoreError as e:
        app.logger.error(f"Failed to connect to MongoDB: {e}")
        raise


def create_app(config_object, store=None, adapters=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    # Configure logging first
    logging.basicConfig(level=logging.INFO)
    app.logger.setLevel(logging.INFO)

    # Load configuration
    try:
        app.config.from_object(config_object)
    except Exception as e:
        app.logger.error(f"Failed to load configuration: {e}")
        raise

    if store is None:
        config_object.validate()
        store = init_store(app)
    if adapters is None:
        adapters = build_adapters(config_object)

    cache = TTLCache(default_ttl=app.config['CACHE_TTL_SECONDS'])
    # Any committed run, HTTP or scheduled, makes cached trending topics stale
    pipeline = Pipeline(store, adapters, on_commit=lambda result: cache.invalidate_prefix('trending'))
    article_service = ArticleService(store, pipeline.sources)

    # Register blueprints and initialize routes
    from .routes.main import main_bp, init_route_dependencies
    app.register_blueprint(main_bp)
    init_route_dependencies(app, store, pipeline, article_service, cache)

    @app.route('/')
    def index():
        return "MarketPulse ingestion service is running!"

    return app


__all__ = ['create_app', 'init_store']
