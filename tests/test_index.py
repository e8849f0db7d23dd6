"""Tests for the schema inspection server."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pymysql
import pytest

import index
from conftest import make_cursor, show_columns
from db import Database
from errors import DatabaseConnectionError


@pytest.fixture
def client():
    index.app.config["TESTING"] = True
    return index.app.test_client()


def _database(*cursors):
    conn = MagicMock()
    conn.cursor.side_effect = list(cursors)
    return Database.from_connection(conn, table_prefix="wx_")


class TestRoutes:
    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.get_json()["service"] == "wexdb"

    def test_health_up(self, client):
        database = _database(make_cursor(["1"], [(1,)]))
        with patch("db.get_connection", return_value=database):
            resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["database"] == "up"
        database.connection.close.assert_called_once()

    def test_health_down(self, client):
        with patch("db.get_connection", side_effect=DatabaseConnectionError("Database Error: 2003")):
            resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.get_json()["database"] == "down"

    def test_columns(self, client):
        database = _database(show_columns(("id", "int(11)"), ("created", "datetime")))
        with patch("db.get_connection", return_value=database):
            resp = client.get("/schema/%7Busers%7D/columns")
        body = resp.get_json()
        assert resp.status_code == 200
        assert [c["name"] for c in body["columns"]] == ["id", "created"]
        assert body["columns"][1]["category"] == "datetime"

    def test_columns_invalid_name(self, client):
        database = _database()
        with patch("db.get_connection", return_value=database):
            resp = client.get("/schema/bad-name/columns")
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_columns_unknown_table(self, client):
        err = pymysql.err.ProgrammingError(1146, "Table 'wexdb.wx_nope' doesn't exist")
        database = _database(make_cursor(error=err))
        with patch("db.get_connection", return_value=database):
            resp = client.get("/schema/%7Bnope%7D/columns")
        assert resp.status_code == 404

    def test_columns_other_query_error(self, client):
        err = pymysql.err.OperationalError(2013, "Lost connection to MySQL server during query")
        database = _database(make_cursor(error=err))
        with patch("db.get_connection", return_value=database):
            resp = client.get("/schema/t/columns")
        assert resp.status_code == 500

    def test_not_found(self, client):
        resp = client.get("/nope")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Not found"


class TestMain:
    def test_exits_when_database_unreachable(self):
        with patch("db.get_connection", side_effect=DatabaseConnectionError("Database Error: 2003")):
            with pytest.raises(SystemExit) as exc:
                index.main()
        assert exc.value.code == 1

    def test_runs_app_when_database_reachable(self):
        with patch("db.get_connection", return_value=_database()), patch.object(index.app, "run") as run:
            index.main()
        run.assert_called_once()
