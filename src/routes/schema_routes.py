"""
Schema API: column metadata for a table, read through Database.table_meta.
"""
import logging

from flask import Blueprint, jsonify

import db
from errors import InvalidIdentifierError, QueryError

logger = logging.getLogger(__name__)

blueprint = Blueprint("schema", __name__)

# MySQL ER_NO_SUCH_TABLE
NO_SUCH_TABLE = 1146


@blueprint.get("/<table>/columns")
def columns(table):
    try:
        with db.get_connection() as database:
            meta = database.table_meta(table)
        return jsonify(success=True, table=table, columns=[c.to_dict() for c in meta]), 200
    except InvalidIdentifierError as e:
        return jsonify(success=False, error=str(e)), 400
    except QueryError as e:
        if e.code == NO_SUCH_TABLE:
            return jsonify(success=False, error=f"Unknown table: {table}"), 404
        logger.exception("schema/columns: %s", e)
        return jsonify(success=False, error="Internal server error"), 500
    except Exception as e:
        logger.exception("schema/columns: %s", e)
        return jsonify(success=False, error="Internal server error"), 500
