from datetime import datetime, timezone
from flask import Blueprint, request, jsonify, current_app

from ..errors import PartialFailure, RunInProgress, StoreError, UnknownSourceError
from ..utils.cache import MISS, make_key

# Initialize the blueprint
main_bp = Blueprint('main', __name__)

EXTENSION_KEY = 'marketpulse'


def init_route_dependencies(app, store, pipeline, article_service, cache):
    """Attach the service objects the routes need to the application"""
    app.extensions[EXTENSION_KEY] = {
        'store': store,
        'pipeline': pipeline,
        'article_service': article_service,
        'cache': cache,
    }


def _deps():
    return current_app.extensions[EXTENSION_KEY]


@main_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    deps = _deps()
    mongo_status = "connected" if deps['store'].ping() else "disconnected"
    return jsonify({
        "status": "ok" if mongo_status == "connected" else "degraded",
        "dependencies": {"mongodb": mongo_status},
        "sources": deps['pipeline'].sources,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }), 200


@main_bp.route('/articles', methods=['GET'])
def get_articles():
    """
    API endpoint to retrieve stored articles, newest first.
    Query parameters: source, page, limit
    """
    source = request.args.get('source', type=str)
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 20, type=int)

    deps = _deps()
    if source and source not in deps['pipeline'].sources:
        return jsonify({"message": f"Unknown source '{source}'"}), 404
    try:
        result = deps['article_service'].get_articles(source, page, limit)
    except StoreError as e:
        current_app.logger.error(f"Error fetching stored articles: {e}")
        return jsonify({"message": "Error fetching stored articles"}), 500
    return jsonify(result), 200


@main_bp.route('/trending', methods=['GET'])
def get_trending():
    """
    API endpoint returning the most frequent keywords in recent articles.
    Query parameters: hours, limit
    """
    hours = request.args.get('hours', 24, type=int)
    limit = request.args.get('limit', 10, type=int)

    deps = _deps()
    cache = deps['cache']
    key = make_key('trending', hours=hours, limit=limit)
    cached = cache.get(key)
    if cached is not MISS:
        return jsonify(cached), 200

    try:
        result = deps['article_service'].get_trending(hours, limit)
    except StoreError as e:
        current_app.logger.error(f"Error computing trending topics: {e}")
        return jsonify({"message": "Error computing trending topics"}), 500
    cache.set(key, result)
    return jsonify(result), 200


@main_bp.route('/<source>', methods=['GET'])
def ingest_source(source):
    """
    API endpoint that runs the ingestion pipeline for one source, or returns
    the cached result of a recent run.
    Query parameters: q (search query)
    """
    query = request.args.get('q', type=str)
    deps = _deps()
    pipeline = deps['pipeline']
    cache = deps['cache']

    if source not in pipeline.sources:
        return jsonify({"message": f"Unknown source '{source}'"}), 404

    key = make_key(source, q=query)
    cached = cache.get(key)
    if cached is not MISS:
        current_app.logger.info(f"Serving cached {source} result")
        return jsonify(cached), 200

    try:
        result = pipeline.run(source, query)
    except RunInProgress:
        current_app.logger.info(f"Ignoring {source} trigger: a run is already in progress")
        return jsonify({"message": f"A {source} ingestion run is already in progress"}), 409
    except UnknownSourceError:
        return jsonify({"message": f"Unknown source '{source}'"}), 404
    except PartialFailure as e:
        current_app.logger.error(f"Error fetching {source} articles: {e}")
        return jsonify({"message": f"Error fetching {source} articles", "stage": e.stage}), 500

    payload = result.to_dict()
    cache.set(key, payload)
    return jsonify(payload), 200
