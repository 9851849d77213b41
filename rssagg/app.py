"""The feed aggregator web application and its command."""

import argparse
import logging
import os
import threading

from dotenv import load_dotenv
from flask import Flask, Response, request

from .database import Queries, connect
from .handlers import Api, handler_err, handler_readiness
from .scraper import start_scraping

_ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
_EXPOSED_HEADERS = "Link"
_MAX_AGE = 300


def _origin_allowed(origin: str) -> bool:
    return origin.startswith(("https://", "http://"))


def _install_cors(app: Flask) -> None:
    @app.before_request
    def preflight():
        origin = request.headers.get("Origin")
        wanted = request.headers.get("Access-Control-Request-Method")
        if request.method != "OPTIONS" or not origin or not wanted:
            return None
        resp = Response(status=200)
        resp.headers.add("Vary", "Origin")
        if _origin_allowed(origin) and wanted.upper() in _ALLOWED_METHODS:
            resp.headers["Access-Control-Allow-Origin"] = origin
            resp.headers["Access-Control-Allow-Methods"] = wanted.upper()
            requested = request.headers.get("Access-Control-Request-Headers")
            if requested:
                resp.headers["Access-Control-Allow-Headers"] = requested
            resp.headers["Access-Control-Max-Age"] = str(_MAX_AGE)
        return resp

    @app.after_request
    def add_headers(resp):
        origin = request.headers.get("Origin")
        if request.method == "OPTIONS" or not origin:
            return resp
        resp.headers.add("Vary", "Origin")
        if _origin_allowed(origin):
            resp.headers["Access-Control-Allow-Origin"] = origin
            resp.headers["Access-Control-Expose-Headers"] = _EXPOSED_HEADERS
        return resp


def create_app(queries: Queries) -> Flask:
    """Build the application with all routes under ``/v1``."""
    app = Flask(__name__)
    api = Api(queries)
    auth = api.middleware_auth
    _install_cors(app)
    routes = [
        ("/v1/healthz", "healthz", handler_readiness, "GET"),
        ("/v1/err", "err", handler_err, "GET"),
        ("/v1/users", "create_user", api.create_user, "POST"),
        ("/v1/users", "get_user", auth(api.get_user), "GET"),
        ("/v1/feeds", "create_feed", auth(api.create_feed), "POST"),
        ("/v1/feeds", "get_feeds", api.get_feeds, "GET"),
        ("/v1/posts", "get_posts", auth(api.get_posts_for_user), "GET"),
        ("/v1/feed_follows", "create_feed_follow", auth(api.create_feed_follow), "POST"),
        ("/v1/feed_follows", "get_feed_follows", auth(api.get_feed_follows), "GET"),
        (
            "/v1/feed_follows/<feed_follow_id>",
            "delete_feed_follow",
            auth(api.delete_feed_follow),
            "DELETE",
        ),
    ]
    for rule, endpoint, view, method in routes:
        app.add_url_rule(rule, endpoint, view, methods=[method])
    return app


def main(argv=None) -> None:
    """Serve the API on $PORT with the database at $DB_URL, scraping in the background."""
    parser = argparse.ArgumentParser(description="RSS feed aggregator server.")
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    load_dotenv(".env")

    port = os.environ.get("PORT", "")
    if not port:
        raise SystemExit("PORT environment variable is not set")
    print(f"Server is running on port: {port}")
    db_url = os.environ.get("DB_URL", "")
    if not db_url:
        raise SystemExit("DB_URL is not found in .env file")

    try:
        conn = connect(db_url)
    except Exception as exc:
        raise SystemExit(f"Failed to connect to database: {exc}") from exc
    queries = Queries(conn)

    threading.Thread(target=start_scraping, args=(queries, 10, 60.0), daemon=True).start()
    create_app(queries).run(host="0.0.0.0", port=int(port))