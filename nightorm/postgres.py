"""PostgreSQL implementation of the ORM interfaces.

Connections come from a ``connector``: any callable that takes the
connection string and returns a DB-API 2.0 connection. Statements are
written with ``$1``, ``$2``, ... placeholders; an ORM created with
``paramstyle="format"`` rewrites them to ``%s`` for drivers that expect it.
"""

from __future__ import annotations

import dataclasses
import re
import typing
from contextlib import closing
from typing import Any, Callable

from nightorm.core import (
    ORM,
    ConnectionNotEstablishedError,
    Model,
    ModelWithPrimaryKey,
    NoRowsAffectedError,
    ORMError,
    RecordExistsError,
    RecordNotFoundError,
    Transaction,
)
from nightorm.query_builder import QueryBuilder
from nightorm.reflection import (
    TAG,
    ReflectionError,
    _field_hints,
    get_struct_fields,
    get_tag_name,
    set_struct_field,
)

UNIQUE_VIOLATION = "23505"
PARAMSTYLES = ("dollar", "format")

Connector = Callable[[str], Any]

_PLACEHOLDER = re.compile(r"\$(\d+)")


def _sqlstate(exc: BaseException) -> str | None:
    for attr in ("pgcode", "sqlstate", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, str):
            return value
    return None


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (bool, int, float, complex, str, bytes, bytearray)):
        return not value
    return False


def _adapt(query: str, args: tuple, paramstyle: str) -> tuple[str, list[Any]]:
    if paramstyle == "dollar":
        return query, list(args)
    order: list[int] = []

    def _replace(match: re.Match) -> str:
        order.append(int(match.group(1)) - 1)
        return "%s"

    text = _PLACEHOLDER.sub(_replace, query.replace("%", "%%"))
    try:
        return text, [args[i] for i in order]
    except IndexError:
        raise ORMError("placeholder refers to a missing argument") from None


def _fields(model: Any) -> dict[str, Any]:
    try:
        return get_struct_fields(model)
    except ReflectionError as exc:
        raise ORMError(f"error retrieving struct fields: {exc}") from exc


def _key_of(model: ModelWithPrimaryKey) -> tuple[str, Any]:
    try:
        return model.primary_key(), model.primary_key_value()
    except ReflectionError as exc:
        raise ORMError(f"error retrieving primary key: {exc}") from exc


def _zero(hint: Any) -> Any:
    origin = typing.get_origin(hint) or hint
    if isinstance(origin, type):
        try:
            return origin()
        except Exception:
            return None
    return None


def _instantiate(cls: type, values: dict[str, Any]) -> Any:
    hints = _field_hints(cls)
    kwargs: dict[str, Any] = {}
    late: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if f.name in values:
            if f.init:
                kwargs[f.name] = values[f.name]
            else:
                late[f.name] = values[f.name]
        elif (
            f.init
            and f.default is dataclasses.MISSING
            and f.default_factory is dataclasses.MISSING
        ):
            kwargs[f.name] = _zero(hints.get(f.name))
    obj = cls(**kwargs)
    for name, value in late.items():
        object.__setattr__(obj, name, value)
    return obj


class _Session:
    """Statement execution shared by the ORM and its transactions."""

    _paramstyle: str = "dollar"

    def _conn(self) -> Any:
        raise NotImplementedError

    def _after_write(self) -> None:
        """Hook run after a successful write."""

    def _after_failure(self) -> None:
        """Hook run after a failed statement."""

    def _cursor_for(self, query: str, args: tuple) -> Any:
        connection = self._conn()
        text, params = _adapt(query, args, self._paramstyle)
        cursor = connection.cursor()
        try:
            cursor.execute(text, params)
        except BaseException:
            cursor.close()
            raise
        return cursor

    def _insert(self, model: Model, returning: bool) -> None:
        fields = _fields(model)
        primary_key: str | None = None
        key_value: Any = None
        if returning and isinstance(model, ModelWithPrimaryKey):
            primary_key, key_value = _key_of(model)

        pairs = [
            (column, value)
            for column, value in fields.items()
            if not (column == primary_key and _is_zero(key_value))
        ]
        qb = QueryBuilder()
        qb.write_insert(
            model.table_name(),
            [column for column, _ in pairs],
            [value for _, value in pairs],
        )
        if primary_key:
            qb.write_returning(primary_key)
        query, args = qb.build()

        self._conn()
        generated: Any = None
        try:
            with closing(self._cursor_for(query, tuple(args))) as cursor:
                if primary_key:
                    generated = cursor.fetchone()[0]
        except ORMError:
            raise
        except Exception as exc:
            self._after_failure()
            if _sqlstate(exc) == UNIQUE_VIOLATION:
                raise RecordExistsError(f"record already exists: {exc}") from exc
            raise ORMError(f"error inserting record: {exc}") from exc
        self._after_write()

        if primary_key:
            try:
                set_struct_field(model, primary_key, generated)
            except ReflectionError as exc:
                raise ORMError(f"error setting primary key value: {exc}") from exc

    def _modify(self, query: str, args: list, action: str, empty_message: str) -> None:
        self._conn()
        try:
            with closing(self._cursor_for(query, tuple(args))) as cursor:
                count = cursor.rowcount
        except ORMError:
            raise
        except Exception as exc:
            self._after_failure()
            raise ORMError(f"error {action} record: {exc}") from exc
        self._after_write()
        if count is None or count < 0:
            raise ORMError("error retrieving affected rows count")
        if count == 0:
            raise NoRowsAffectedError(empty_message)

    def _update(self, model: ModelWithPrimaryKey) -> None:
        fields = _fields(model)
        primary_key, key_value = _key_of(model)
        fields.pop(primary_key, None)

        qb = QueryBuilder()
        qb.write_update(model.table_name(), list(fields), list(fields.values()))
        qb.write_where(f"{primary_key} = {qb.add_param(key_value)}")
        query, args = qb.build()
        self._modify(query, args, "updating", "no records were updated")

    def _delete(self, model: ModelWithPrimaryKey) -> None:
        primary_key, key_value = _key_of(model)
        qb = QueryBuilder()
        qb.write_delete(model.table_name())
        qb.write_where(f"{primary_key} = {qb.add_param(key_value)}")
        query, args = qb.build()
        self._modify(query, args, "deleting", "no records were deleted")


class PostgresORM(_Session, ORM):
    """ORM backed by a PostgreSQL DB-API connection."""

    def __init__(self, paramstyle: str = "dollar") -> None:
        if paramstyle not in PARAMSTYLES:
            raise ValueError(f"unsupported paramstyle: {paramstyle!r}")
        self._paramstyle = paramstyle
        self._connection: Any = None
        self._connector: Connector | None = None
        self._connection_string = ""

    @property
    def db(self) -> Any:
        """The underlying connection, or None when not connected."""
        return self._connection

    def _conn(self) -> Any:
        if self._connection is None:
            raise ConnectionNotEstablishedError()
        return self._connection

    def _after_write(self) -> None:
        self._connection.commit()

    def _after_failure(self) -> None:
        try:
            self._connection.rollback()
        except Exception:
            pass

    def connect(self, connection_string: str, connector: Connector) -> None:
        """Open a connection with ``connector(connection_string)`` and verify it."""
        try:
            connection = connector(connection_string)
        except Exception as exc:
            raise ORMError(f"error connecting to PostgreSQL: {exc}") from exc
        try:
            with closing(connection.cursor()) as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except Exception as exc:
            connection.close()
            raise ORMError(f"error pinging PostgreSQL connection: {exc}") from exc
        self._connection = connection
        self._connector = connector
        self._connection_string = connection_string

    def close(self) -> None:
        """Close the connection."""
        connection = self._conn()
        self._connection = None
        connection.close()

    def create(self, model: Model) -> None:
        """Insert ``model``; a zero primary key is left to the database and read back."""
        self._conn()
        self._insert(model, returning=True)

    def find_by_id(self, model: ModelWithPrimaryKey, id: Any) -> None:
        """Load the record whose primary key is ``id`` into ``model``."""
        self._conn()
        qb = QueryBuilder()
        qb.write_select().write_from(model.table_name())
        qb.write_where(f"{model.primary_key()} = {qb.add_param(id)}")
        query, args = qb.build()

        try:
            with closing(self._cursor_for(query, tuple(args))) as cursor:
                row = cursor.fetchone()
                description = cursor.description
        except ORMError:
            raise
        except Exception as exc:
            raise ORMError(f"error executing query: {exc}") from exc
        if row is None:
            raise RecordNotFoundError("record not found")

        fields = _fields(model)
        columns = [d[0] for d in description] if description else list(fields)
        for column, value in zip(columns, row):
            if column not in fields:
                continue
            try:
                set_struct_field(model, column, value)
            except ReflectionError as exc:
                raise ORMError(f"error setting value for field {column}: {exc}") from exc

    def find_all(self, model: Model) -> list:
        """Return every row of the model's table as new instances of its class."""
        self._conn()
        _fields(model)
        cls = type(model)
        qb = QueryBuilder()
        qb.write_select().write_from(model.table_name())
        query, args = qb.build()

        try:
            with closing(self._cursor_for(query, tuple(args))) as cursor:
                rows = cursor.fetchall()
                description = cursor.description
        except ORMError:
            raise
        except Exception as exc:
            raise ORMError(f"error executing query: {exc}") from exc

        columns = [d[0] for d in description or ()]
        candidates = [f for f in dataclasses.fields(cls) if not f.name.startswith("_")]
        mapping: dict[int, str] = {}
        for index, column in enumerate(columns):
            wanted = column.lower()
            matches = [
                f.name
                for f in candidates
                if f.name.lower() == wanted
                or get_tag_name(cls, f.name, TAG).lower() == wanted
            ]
            if len(matches) == 1:
                mapping[index] = matches[0]

        return [
            _instantiate(cls, {name: row[index] for index, name in mapping.items()})
            for row in rows
        ]

    def update(self, model: ModelWithPrimaryKey) -> None:
        """Write every non-key field of ``model`` to its record."""
        self._conn()
        self._update(model)

    def delete(self, model: ModelWithPrimaryKey) -> None:
        """Remove the record of ``model``."""
        self._conn()
        self._delete(model)

    def query(self, query: str, *args: Any) -> Any:
        """Run a custom query and return the open cursor."""
        return self._cursor_for(query, args)

    def execute(self, query: str, *args: Any) -> Any:
        """Run a custom command, commit it and return its cursor."""
        self._conn()
        try:
            cursor = self._cursor_for(query, args)
        except ORMError:
            raise
        except Exception:
            self._after_failure()
            raise
        self._after_write()
        return cursor

    def transaction(self) -> PostgresTransaction:
        """Begin a transaction on a connection of its own."""
        self._conn()
        try:
            connection = self._connector(self._connection_string)
        except Exception as exc:
            raise ORMError(f"error starting transaction: {exc}") from exc
        return PostgresTransaction(connection, self._paramstyle)


class PostgresTransaction(_Session, Transaction):
    """A transaction holding its own connection until commit or rollback."""

    def __init__(self, connection: Any, paramstyle: str = "dollar") -> None:
        self._connection = connection
        self._paramstyle = paramstyle
        self._done = False

    def _conn(self) -> Any:
        if self._done:
            raise ORMError("transaction has already been committed or rolled back")
        return self._connection

    def _finish(self, action: Callable[[], None]) -> None:
        self._conn()
        self._done = True
        try:
            action()
        finally:
            self._connection.close()

    def commit(self) -> None:
        """Commit and release the connection."""
        self._finish(self._connection.commit)

    def rollback(self) -> None:
        """Roll back and release the connection."""
        self._finish(self._connection.rollback)

    def create(self, model: Model) -> None:
        """Insert every mapped field of ``model``."""
        self._insert(model, returning=False)

    def update(self, model: ModelWithPrimaryKey) -> None:
        """Write every non-key field of ``model`` to its record."""
        self._update(model)

    def delete(self, model: ModelWithPrimaryKey) -> None:
        """Remove the record of ``model``."""
        self._delete(model)

    def query(self, query: str, *args: Any) -> Any:
        """Run a custom query and return the open cursor."""
        return self._cursor_for(query, args)

    def execute(self, query: str, *args: Any) -> Any:
        """Run a custom command and return its cursor."""
        return self._cursor_for(query, args)

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._done:
            return False
        return super().__exit__(exc_type, exc, tb)


def new_postgres_orm() -> PostgresORM:
    """Return an ORM that is not yet connected."""
    return PostgresORM()


def connect(connection_string: str, connector: Connector) -> PostgresORM:
    """Return an ORM connected with ``connector(connection_string)``."""
    orm = new_postgres_orm()
    orm.connect(connection_string, connector)
    return orm