"""
Schema inspection server entry point. Read-only REST API over the database facade.
Uses local MySQL database (default: wexdb). Run from project root: python src/index.py
"""
import logging
import sys

from flask import Flask, jsonify

import config
import db
from errors import DatabaseError
from routes.schema_routes import blueprint as schema_bp

logging.basicConfig(stream=sys.stderr, level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.json.sort_keys = False

app.register_blueprint(schema_bp, url_prefix="/schema")


@app.route("/")
def root():
    """Root: simple response so GET / does not 404."""
    return jsonify(
        service="wexdb",
        status="ok",
        health="/health",
        endpoints=["GET /schema/<table>/columns"],
    ), 200


@app.route("/health")
def health():
    try:
        with db.get_connection() as database:
            database.fetch_scalar("SELECT 1")
    except DatabaseError as e:
        logger.error("health: database unavailable: %s", e)
        return jsonify(status="error", service="wexdb", database="down"), 503
    return jsonify(status="ok", service="wexdb", database="up")


@app.errorhandler(404)
def not_found(_e):
    return jsonify(success=False, error="Not found"), 404


def main():
    try:
        db.get_connection().close()
    except DatabaseError as e:
        logger.error("Database connection failed: %s", e)
        sys.exit(1)
    app.run(host="0.0.0.0", port=config.PORT, debug=(config.NODE_ENV == "development"))


if __name__ == "__main__":
    main()
