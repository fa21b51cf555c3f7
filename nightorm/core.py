"""Model base classes, ORM interfaces and the errors they raise."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from nightorm.reflection import get_primary_key_field


class ORMError(Exception):
    """Base class for errors raised by ORM operations."""


class ConnectionNotEstablishedError(ORMError):
    """The ORM has no open database connection."""

    def __init__(self, message: str = "connection not established") -> None:
        super().__init__(message)


class RecordNotFoundError(ORMError):
    """No record matched the requested key."""


class RecordExistsError(ORMError):
    """An insert violated a unique constraint."""


class NoRowsAffectedError(ORMError):
    """An update or delete matched no rows."""


class Model(ABC):
    """A dataclass mapped to a database table."""

    @abstractmethod
    def table_name(self) -> str:
        """Return the name of the table this model is stored in."""


class ModelWithPrimaryKey(Model):
    """A model identified by a primary-key column.

    By default the key is the field tagged ``,primary`` or, failing that,
    the field named ``id``; subclasses may override either method.
    """

    def primary_key(self) -> str:
        """Return the primary-key column name."""
        return get_primary_key_field(self)[0]

    def primary_key_value(self) -> Any:
        """Return the primary-key value."""
        return get_primary_key_field(self)[1]


class ORM(ABC):
    """Operations every database backend provides. Usable as a context manager that closes on exit."""

    @abstractmethod
    def connect(self, connection_string: str, connector) -> None:
        """Open a connection with ``connector(connection_string)`` and verify it."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""

    @abstractmethod
    def create(self, model: Model) -> None:
        """Insert a new record for ``model``."""

    @abstractmethod
    def find_by_id(self, model: ModelWithPrimaryKey, id: Any) -> None:
        """Load the record with key ``id`` into ``model``."""

    @abstractmethod
    def find_all(self, model: Model) -> list:
        """Return every record of the model's table as model instances."""

    @abstractmethod
    def update(self, model: ModelWithPrimaryKey) -> None:
        """Write the model's fields to its existing record."""

    @abstractmethod
    def delete(self, model: ModelWithPrimaryKey) -> None:
        """Remove the model's record."""

    @abstractmethod
    def query(self, query: str, *args: Any):
        """Run a custom query and return its cursor."""

    @abstractmethod
    def execute(self, query: str, *args: Any):
        """Run a custom command and return its cursor."""

    @abstractmethod
    def transaction(self) -> Transaction:
        """Begin a transaction."""

    def __enter__(self) -> ORM:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


class Transaction(ABC):
    """A database transaction.

    As a context manager it commits when the block succeeds and rolls back
    when it raises.
    """

    @abstractmethod
    def commit(self) -> None:
        """Commit the transaction."""

    @abstractmethod
    def rollback(self) -> None:
        """Roll the transaction back."""

    @abstractmethod
    def create(self, model: Model) -> None:
        """Insert a new record within the transaction."""

    @abstractmethod
    def update(self, model: ModelWithPrimaryKey) -> None:
        """Update a record within the transaction."""

    @abstractmethod
    def delete(self, model: ModelWithPrimaryKey) -> None:
        """Delete a record within the transaction."""

    @abstractmethod
    def query(self, query: str, *args: Any):
        """Run a custom query within the transaction."""

    @abstractmethod
    def execute(self, query: str, *args: Any):
        """Run a custom command within the transaction."""

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False