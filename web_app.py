#!/usr/bin/env python3
"""
Flask search API for ContentRank.
Thin HTTP layer: parameter validation, rate limiting and JSON responses.
Searching, ranking and caching live in contentrank.search / contentrank.cache.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, current_app, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from contentrank.cache.search_cache import BoundedSearchCache
from contentrank.config import Settings
from contentrank.ingestion.content_types import ContentType
from contentrank.search.search_service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, SearchService
from contentrank.storage.postgres_contents import PostgresContentStore
from cors_config import configure_cors

logger = logging.getLogger(__name__)

VALID_TYPES = tuple(ct.value for ct in ContentType)


def _build_search_service(settings: Settings) -> SearchService:
    store = PostgresContentStore(settings.pg_dsn)
    cache = BoundedSearchCache(ttl_seconds=settings.search_cache_ttl)
    return SearchService(store, cache)


def create_app(service: Optional[SearchService] = None, *, settings: Optional[Settings] = None) -> Flask:
    """Application factory.

    `service` is injected in tests; otherwise it is built from the environment.
    """
    if settings is None:
        settings = Settings.from_env()
    if service is None:
        service = _build_search_service(settings)

    app = Flask(__name__)
    app.json.sort_keys = False
    app.config["API_RATE_LIMIT"] = settings.api_rate_limit
    app.extensions["search_service"] = service
    configure_cors(app, settings.cors_origins)

    limiter = Limiter(
        key_func=get_remote_address,
        app=app,
        storage_uri="memory://",
    )

    @app.route("/api/search")
    @limiter.limit(lambda: current_app.config["API_RATE_LIMIT"])
    def search_contents():
        """Search contents by keyword and/or type, ranked by score."""
        keyword = request.args.get("q") or None
        content_type = (request.args.get("type") or "").strip().lower() or None
        page = request.args.get("page", 1, type=int)
        limit = request.args.get("limit", DEFAULT_PAGE_SIZE, type=int)

        if content_type and content_type not in VALID_TYPES:
            return jsonify({"error": f"Invalid type. Must be one of: {', '.join(VALID_TYPES)}."}), 400
        if page < 1:
            page = 1
        if limit < 1 or limit > MAX_PAGE_SIZE:
            limit = DEFAULT_PAGE_SIZE

        try:
            result = current_app.extensions["search_service"].search(keyword, content_type, page, limit)
        except Exception as e:
            logger.error(f"Search failed: {e}")
            return jsonify({"error": f"Search failed: {e}"}), 500
        return jsonify(result)

    @app.route("/api/health")
    @limiter.exempt
    def health_check():
        return jsonify({
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(429)
    def rate_limit_handler(error):
        return jsonify({
            "error": "Rate limit exceeded. Too many requests.",
            "message": f"You have exceeded the API rate limit of {current_app.config['API_RATE_LIMIT']}.",
        }), 429

    return app


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get("PORT", 5002))
    debug = os.environ.get("FLASK_ENV") == "development"
    logger.info(f"Starting ContentRank search API on port {port}")
    create_app().run(host="0.0.0.0", port=port, debug=debug)
