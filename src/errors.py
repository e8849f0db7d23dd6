"""
Error types raised by the database facade. All of them derive from DatabaseError
so callers can catch the whole family in one place.
"""


class DatabaseError(Exception):
    """Base class for every error raised by db and result_set."""


class DatabaseConnectionError(DatabaseError):
    """The MySQL connection could not be opened."""


class QueryError(DatabaseError):
    """The server rejected a statement. Carries the MySQL error code, message and final SQL."""

    def __init__(self, code, message, sql):
        self.code = code
        self.message = message
        self.sql = sql
        super().__init__(f"Database Error: {code} {message} - {sql}")


class InvalidIdentifierError(DatabaseError):
    """A table name contains characters outside [A-Za-z0-9_{}.]."""

    def __init__(self, operation, identifier):
        self.identifier = identifier
        super().__init__(f"{operation} - Invalid table name: {identifier}")


class InvalidColumnError(DatabaseError):
    """An upsert field is not a column of the target table."""

    def __init__(self, table, column):
        self.table = table
        self.column = column
        super().__init__(f"upsert - Invalid column: {column} (table {table})")


class EmptyFieldSetError(DatabaseError):
    """An upsert was asked to write zero columns."""

    def __init__(self, table):
        self.table = table
        super().__init__(f"upsert - Zero columns to insert/update (table {table})")
