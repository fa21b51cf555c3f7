from dataclasses import dataclass, field

import pytest

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
from nightorm.reflection import ReflectionError


@dataclass
class Account(ModelWithPrimaryKey):
    id: int = field(default=0, metadata={"db": "id,primary"})
    name: str = field(default="", metadata={"db": "name"})

    def table_name(self):
        return "accounts"


@dataclass
class Keyless(ModelWithPrimaryKey):
    name: str = ""

    def table_name(self):
        return "keyless"


class RecordingTransaction(Transaction):
    def __init__(self):
        self.events = []

    def commit(self):
        self.events.append("commit")

    def rollback(self):
        self.events.append("rollback")

    def create(self, model):
        self.events.append(("create", model.table_name()))

    def update(self, model):
        self.events.append("update")

    def delete(self, model):
        self.events.append("delete")

    def query(self, query, *args):
        return (query, args)

    def execute(self, query, *args):
        return (query, args)


class RecordingORM(ORM):
    def __init__(self):
        self.closed = False

    def connect(self, connection_string, connector):
        connector(connection_string)

    def close(self):
        self.closed = True

    def create(self, model):
        pass

    def find_by_id(self, model, id):
        pass

    def find_all(self, model):
        return []

    def update(self, model):
        pass

    def delete(self, model):
        pass

    def query(self, query, *args):
        return None

    def execute(self, query, *args):
        return None

    def transaction(self):
        return RecordingTransaction()


def test_model_is_abstract():
    with pytest.raises(TypeError):
        Model()


def test_primary_key_defaults_from_tags():
    account = Account(id=5, name="x")
    assert ModelWithPrimaryKey.primary_key(account) == "id"
    assert ModelWithPrimaryKey.primary_key_value(account) == 5


def test_primary_key_missing_raises():
    with pytest.raises(ReflectionError):
        ModelWithPrimaryKey.primary_key(Keyless(name="x"))


@pytest.mark.parametrize(
    "error_class",
    [ConnectionNotEstablishedError, RecordNotFoundError, RecordExistsError, NoRowsAffectedError],
)
def test_errors_share_base(error_class):
    error = error_class()
    try:
        raise error
    except ORMError as caught:
        assert caught is error
    assert issubclass(error_class, ORMError)
    assert not issubclass(ORMError, error_class)


def test_connection_error_default_message():
    assert str(ConnectionNotEstablishedError()) == "connection not established"


def test_transaction_commits_on_success():
    tx = RecordingTransaction()
    active = Transaction.__enter__(tx)
    assert active is tx
    active.create(Account())
    assert not Transaction.__exit__(tx, None, None, None)
    assert tx.events == [("create", "accounts"), "commit"]


def test_transaction_rolls_back_on_error():
    tx = RecordingTransaction()
    Transaction.__enter__(tx)
    error = RuntimeError("boom")
    assert not Transaction.__exit__(tx, RuntimeError, error, None)
    assert tx.events == ["rollback"]


def test_orm_context_manager_closes():
    orm = RecordingORM()
    assert ORM.__enter__(orm) is orm
    assert orm.closed is False
    ORM.__exit__(orm, None, None, None)
    assert orm.closed is True


def test_orm_cannot_be_instantiated_directly():
    with pytest.raises(TypeError):
        ORM()