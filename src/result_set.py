"""
Forward-only view over the rows of one executed statement.
Rows come back one at a time; None marks the end of the current result set.
"""
import logging
import weakref

logger = logging.getLogger(__name__)


class ResultSet:
    def __init__(self, database, cursor):
        # Weak so a forgotten result set does not keep the connection alive
        self._db = weakref.ref(database) if database is not None else lambda: None
        self._cursor = cursor

    @property
    def database(self):
        """Owning Database, or None once it has been discarded."""
        return self._db()

    @property
    def columns(self):
        """Column names of the current result set (empty for INSERT/UPDATE/DELETE)."""
        description = self._cursor.description
        if not description:
            return []
        return [d[0] for d in description]

    def fetch(self, assoc=True, keep_key_case=False):
        """
        Return the next row, or None when the result set is exhausted.
        assoc=True gives a dict keyed by column name (lowercased unless keep_key_case),
        assoc=False gives a tuple in column order.
        """
        if not self._cursor.description:
            return None
        row = self._cursor.fetchone()
        if row is None:
            return None
        if not assoc:
            return tuple(row)
        names = self.columns
        if not keep_key_case:
            names = [name.lower() for name in names]
        return dict(zip(names, row))

    def next_result_set(self):
        """Move to the next result set of a multi-set call (stored procedures). True if there is one."""
        has_next = bool(self._cursor.nextset())
        logger.debug("next_result_set: %s", has_next)
        return has_next

    def close(self):
        self._cursor.close()

    def __iter__(self):
        while True:
            row = self.fetch()
            if row is None:
                return
            yield row

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
