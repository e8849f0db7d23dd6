"""Shared fakes for PyMySQL connections and cursors."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from db import Database


def make_cursor(columns=None, rows=(), rowcount=None, error=None):
    """Return a MagicMock cursor that serves *rows* through fetchone().

    Parameters
    ----------
    columns:
        Column names of the result set, or None for a statement without one.
    rows:
        Tuples returned one by one; fetchone() yields None afterwards.
    rowcount:
        Value of cursor.rowcount (defaults to the number of rows).
    error:
        Exception raised by cursor.execute().
    """
    cur = MagicMock()
    cur.description = [(name, None, None, None, None, None, None) for name in columns] if columns else None
    it = iter(rows)
    cur.fetchone.side_effect = lambda: next(it, None)
    cur.rowcount = len(rows) if rowcount is None else rowcount
    cur.nextset.return_value = None
    if error is not None:
        cur.execute.side_effect = error
    return cur


def show_columns(*columns):
    """Cursor answering SHOW COLUMNS for (name, type) pairs."""
    return make_cursor(
        ["Field", "Type", "Null", "Key", "Default", "Extra"],
        [(name, type_, "YES", "", None, "") for name, type_ in columns],
    )


@pytest.fixture
def conn():
    return MagicMock()


@pytest.fixture
def database(conn):
    return Database.from_connection(conn, table_prefix="wx_")
