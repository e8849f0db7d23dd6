"""
MySQL access facade over PyMySQL. One Database object owns one connection (no pool),
rewrites {table} prefix tokens, executes parameterized SQL and shapes the results.
Not safe for concurrent use from several threads; only the table metadata cache is locked.
"""
import logging
import re
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

import pymysql

import config
from errors import (
    DatabaseConnectionError,
    EmptyFieldSetError,
    InvalidColumnError,
    InvalidIdentifierError,
    QueryError,
)
from result_set import ResultSet

logger = logging.getLogger(__name__)

PREFIX_TOKEN = re.compile(r"\{(\w+)\}")
SAFE_TABLE_NAME = re.compile(r"^[A-Za-z0-9_{}.]+$")
DIGITS = re.compile(r"^[0-9]+$")

DATE_FORMATS = {
    "date": "%Y-%m-%d",
    "datetime": "%Y-%m-%d %H:%M:%S",
}


class _Absent:
    """Returned by fetch_scalar when the query produced no row."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "ABSENT"


ABSENT = _Absent()


@dataclass(frozen=True)
class ColumnMeta:
    """One row of SHOW COLUMNS."""

    name: str
    type: str
    null: str = ""
    key: str = ""
    default: object = None
    extra: str = ""

    @property
    def category(self):
        """'date', 'datetime' or 'other', from the declared type without precision."""
        base = self.type.lower().split("(", 1)[0].strip()
        return base if base in DATE_FORMATS else "other"

    def to_dict(self):
        data = asdict(self)
        data["category"] = self.category
        return data


class TableMetaCache:
    """Table name -> list of ColumnMeta. Filled lazily, cleared only through invalidate()."""

    def __init__(self):
        self._entries = {}
        self._lock = threading.Lock()

    def __contains__(self, table):
        return table in self._entries

    def get(self, table):
        return self._entries.get(table)

    def get_or_load(self, table, loader):
        """Return the cached entry, calling loader() under the lock on a miss."""
        with self._lock:
            if table not in self._entries:
                self._entries[table] = loader()
            return self._entries[table]

    def set(self, table, columns):
        with self._lock:
            self._entries[table] = columns

    def invalidate(self, table=None):
        with self._lock:
            if table is None:
                self._entries.clear()
            else:
                self._entries.pop(table, None)


def normalize_args(args):
    """
    Collapse the three calling conventions into one bind value for PyMySQL:
    fetch(sql, [1, 2]), fetch(sql, (1, 2)) and fetch(sql, 1, 2) all bind (1, 2);
    fetch(sql, {"id": 1}) binds the mapping for %(id)s placeholders; fetch(sql) binds nothing.
    """
    if not args:
        return None
    if len(args) == 1:
        only = args[0]
        if isinstance(only, dict):
            return only
        if isinstance(only, (list, tuple)):
            return tuple(only)
    return tuple(args)


def quote_table(table):
    """`schema`.`table` from a validated (possibly dotted) table name."""
    return "`" + table.replace(".", "`.`") + "`"


def check_table_name(operation, table):
    if not isinstance(table, str) or not SAFE_TABLE_NAME.match(table):
        raise InvalidIdentifierError(operation, table)


def coerce_timestamp(value, category):
    """Format a Unix timestamp (all-digit str or int) for a date/datetime column, in UTC."""
    fmt = DATE_FORMATS.get(category)
    if fmt is None or isinstance(value, bool) or not isinstance(value, (int, str)):
        return value
    if not DIGITS.match(str(value)):
        return value
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc).strftime(fmt)
    except (ValueError, OverflowError, OSError):
        # Out of datetime range, e.g. a compact 20231114221320 literal
        return value


class Database:
    def __init__(self, host, user, password, database, port=3306, table_prefix="", charset="utf8mb4"):
        try:
            conn = pymysql.connect(
                host=host,
                port=port,
                user=user,
                password=password,
                database=database,
                charset=charset,
                autocommit=True,
            )
        except pymysql.MySQLError as e:
            code = e.args[0] if e.args else None
            raise DatabaseConnectionError(f"Database Error: {code} {e}") from e
        logger.debug("MySQL connection opened: %s:%s/%s", host, port, database)
        self._setup(conn, table_prefix)

    def _setup(self, conn, table_prefix):
        self._conn = conn
        self.table_prefix = table_prefix
        self.affected_rows = 0
        self.meta_cache = TableMetaCache()

    @classmethod
    def from_connection(cls, conn, table_prefix=""):
        """Wrap an already open PyMySQL connection (insert_id() and escape() are PyMySQL-specific)."""
        instance = cls.__new__(cls)
        instance._setup(conn, table_prefix)
        return instance

    @classmethod
    def from_config(cls):
        """New connection from the MYSQL_* / TABLE_PREFIX settings."""
        return cls(
            host=config.MYSQL["host"],
            port=config.MYSQL["port"],
            user=config.MYSQL["user"],
            password=config.MYSQL["password"],
            database=config.MYSQL["database"],
            charset=config.MYSQL["charset"],
            table_prefix=config.TABLE_PREFIX,
        )

    @property
    def connection(self):
        return self._conn

    def close(self):
        self._conn.close()
        logger.debug("MySQL connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def prepare_query(self, sql):
        """Replace every {name} token with table_prefix + name."""
        return PREFIX_TOKEN.sub(lambda m: self.table_prefix + m.group(1), sql)

    def execute(self, sql, *args):
        """Execute a statement and return its ResultSet. Raises QueryError if the server rejects it."""
        sql = self.prepare_query(sql)
        params = normalize_args(args)
        cur = self._conn.cursor()
        logger.debug("execute: %s %r", sql, params)
        try:
            cur.execute(sql, params)
        except pymysql.MySQLError as e:
            self.affected_rows = 0
            cur.close()
            code = e.args[0] if e.args else None
            message = e.args[1] if len(e.args) > 1 else str(e)
            logger.error("query failed: %s %s - %s", code, message, sql)
            raise QueryError(code, message, sql) from e
        except (TypeError, ValueError) as e:
            # PyMySQL formats binds with sql % args: wrong count or a stray %
            self.affected_rows = 0
            cur.close()
            logger.error("query failed: bind mismatch %s - %s", e, sql)
            raise QueryError(None, str(e), sql) from e
        self.affected_rows = cur.rowcount
        return ResultSet(self, cur)

    def fetch_all(self, sql, *args, assoc=True):
        """Execute and return every row, in order."""
        rs = self.execute(sql, *args)
        rows = []
        while True:
            row = rs.fetch(assoc)
            if row is None:
                break
            rows.append(row)
        rs.close()
        return rows

    def fetch_row(self, sql, *args, assoc=True):
        """Execute and return the first row, or None."""
        rs = self.execute(sql, *args)
        row = rs.fetch(assoc)
        rs.close()
        return row

    def fetch_assoc(self, sql, *args):
        """
        Map first-column value -> rest of the row. With two columns the value is the
        second column itself, otherwise a dict of the remaining columns.
        Duplicate keys: the last row wins.
        """
        result = {}
        for row in self.fetch_all(sql, *args):
            key = next(iter(row))
            first = row.pop(key)
            if len(row) == 1:
                result[first] = next(iter(row.values()))
            else:
                result[first] = row
        return result

    def fetch_column(self, sql, *args):
        """Execute and return the first column of every row."""
        return [row[0] for row in self.fetch_all(sql, *args, assoc=False)]

    def fetch_scalar(self, sql, *args):
        """First column of the first row, or ABSENT when there is no row."""
        row = self.fetch_row(sql, *args, assoc=False)
        if row is None:
            return ABSENT
        return row[0]

    def table_meta(self, table):
        """Columns of table as a list of ColumnMeta, cached for the life of this connection."""
        check_table_name("table_meta", table)
        return self.meta_cache.get_or_load(table, lambda: self._load_table_meta(table))

    def _load_table_meta(self, table):
        rows = self.fetch_all(f"SHOW COLUMNS FROM {quote_table(table)}")
        columns = [
            ColumnMeta(
                name=row["field"],
                type=row["type"],
                null=row.get("null") or "",
                key=row.get("key") or "",
                default=row.get("default"),
                extra=row.get("extra") or "",
            )
            for row in rows
        ]
        logger.debug("table_meta: cached %d column(s) for %s", len(columns), table)
        return columns

    def invalidate_table_meta(self, table=None):
        """Forget cached metadata for one table, or for all tables."""
        self.meta_cache.invalidate(table)

    def upsert(self, table, fields, where=None, *where_args):
        """
        INSERT fields into table, or UPDATE ... WHERE <where> when a where clause is given.
        Values are always bound; the where clause is raw SQL and its own binds follow the field values.
        Digit-only values for date/datetime columns are treated as Unix timestamps.
        Returns the affected row count.
        """
        check_table_name("upsert", table)
        if not fields:
            raise EmptyFieldSetError(table)

        meta = {column.name: column for column in self.table_meta(table)}
        columns = []
        values = []
        for name, value in fields.items():
            column = meta.get(name)
            if column is None:
                raise InvalidColumnError(table, name)
            columns.append(f"`{name}`")
            values.append(coerce_timestamp(value, column.category))

        if where is None:
            placeholders = ", ".join(["%s"] * len(values))
            sql = f"INSERT INTO {quote_table(table)} ({', '.join(columns)}) VALUES ({placeholders})"
            params = values
        else:
            extra = normalize_args(where_args)
            if isinstance(extra, dict):
                raise TypeError("upsert where arguments must be positional")
            assignments = ", ".join(f"{c} = %s" for c in columns)
            sql = f"UPDATE {quote_table(table)} SET {assignments} WHERE {where}"
            params = values + list(extra or ())

        self.execute(sql, params).close()
        return self.affected_rows

    def last_insert_id(self):
        """AUTO_INCREMENT id generated by the last INSERT on this connection."""
        return self._conn.insert_id()

    def quote(self, value):
        """Escape and quote a literal for direct embedding in SQL text."""
        return self._conn.escape(value)


def get_connection():
    """Return a new Database from config (caller must close or use context manager)."""
    return Database.from_config()
