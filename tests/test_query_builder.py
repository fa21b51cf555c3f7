from nightorm.query_builder import QueryBuilder


def test_write_select():
    qb = QueryBuilder()
    qb.write_select("id", "name", "email")
    query, _ = qb.build()
    assert query == "SELECT id, name, email"


def test_write_select_all():
    qb = QueryBuilder()
    qb.write_select()
    query, _ = qb.build()
    assert query == "SELECT *"


def test_write_from():
    qb = QueryBuilder()
    qb.write_select().write_from("users")
    query, _ = qb.build()
    assert query == "SELECT * FROM users"


def test_write_where():
    qb = QueryBuilder()
    qb.write_select().write_from("users").write_where("id = %s", 1)
    query, args = qb.build()
    assert query == "SELECT * FROM users WHERE id = $1"
    assert args == [1]


def test_write_and():
    qb = QueryBuilder()
    qb.write_select().write_from("users").write_where("id = %s", 1).write_and(
        "name = %s", "John"
    )
    query, args = qb.build()
    assert query == "SELECT * FROM users WHERE id = $1 AND name = $2"
    assert args == [1, "John"]


def test_write_or():
    qb = QueryBuilder()
    qb.write_select().write_from("users").write_where("id = %s", 1).write_or(
        "id = %s", 2
    )
    query, args = qb.build()
    assert query == "SELECT * FROM users WHERE id = $1 OR id = $2"
    assert args == [1, 2]


def test_write_order_by():
    qb = QueryBuilder()
    qb.write_select().write_from("users").write_order_by("name", "id DESC")
    query, _ = qb.build()
    assert query == "SELECT * FROM users ORDER BY name, id DESC"


def test_write_order_by_without_columns_adds_nothing():
    qb = QueryBuilder()
    qb.write_select().write_from("users").write_order_by()
    query, _ = qb.build()
    assert query == "SELECT * FROM users"


def test_write_limit():
    qb = QueryBuilder()
    qb.write_select().write_from("users").write_limit(10)
    query, _ = qb.build()
    assert query == "SELECT * FROM users LIMIT 10"


def test_write_offset():
    qb = QueryBuilder()
    qb.write_select().write_from("users").write_limit(10).write_offset(5)
    query, _ = qb.build()
    assert query == "SELECT * FROM users LIMIT 10 OFFSET 5"


def test_non_positive_limit_and_offset_are_ignored():
    qb = QueryBuilder()
    qb.write_select().write_from("users").write_limit(0).write_offset(-1)
    query, _ = qb.build()
    assert query == "SELECT * FROM users"


def test_write_insert():
    qb = QueryBuilder()
    qb.write_insert("users", ["name", "email"], ["John", "john@example.com"])
    query, args = qb.build()
    assert query == "INSERT INTO users (name, email) VALUES ($1, $2)"
    assert args == ["John", "john@example.com"]


def test_write_update():
    qb = QueryBuilder()
    qb.write_update(
        "users", ["name", "email"], ["John", "john@example.com"]
    ).write_where("id = %s", 1)
    query, args = qb.build()
    assert query == "UPDATE users SET name = $1, email = $2 WHERE id = $3"
    assert args == ["John", "john@example.com", 1]


def test_write_delete():
    qb = QueryBuilder()
    qb.write_delete("users").write_where("id = %s", 1)
    query, args = qb.build()
    assert query == "DELETE FROM users WHERE id = $1"
    assert args == [1]


def test_write_returning():
    qb = QueryBuilder()
    qb.write_insert("users", ["name"], ["John"]).write_returning("id", "created_at")
    query, _ = qb.build()
    assert query == "INSERT INTO users (name) VALUES ($1) RETURNING id, created_at"


def test_reset():
    qb = QueryBuilder()
    qb.write_select().write_from("users")
    qb.reset()
    query, args = qb.build()
    assert query == ""
    assert args == []


def test_reset_restarts_parameter_numbering():
    qb = QueryBuilder()
    qb.add_param("a")
    qb.reset()
    assert qb.add_param("b") == "$1"


def test_where_with_preformatted_condition():
    qb = QueryBuilder()
    qb.write_delete("users").write_where(f"id = {qb.add_param(7)}")
    query, args = qb.build()
    assert query == "DELETE FROM users WHERE id = $1"
    assert args == [7]


def test_complex_query():
    qb = QueryBuilder()
    (
        qb.write_select("u.id", "u.name", "u.email")
        .write_from("users u")
        .write_where("u.active = %s", True)
        .write_and("u.created_at > %s", "2023-01-01")
        .write_order_by("u.name ASC")
        .write_limit(10)
        .write_offset(20)
    )
    query, args = qb.build()
    assert query == (
        "SELECT u.id, u.name, u.email FROM users u WHERE u.active = $1 "
        "AND u.created_at > $2 ORDER BY u.name ASC LIMIT 10 OFFSET 20"
    )
    assert args == [True, "2023-01-01"]