import pytest
import sqleger.dbapi as dbapi


def test_connect(db_path):
    conn = dbapi.connect(db_path)
    assert conn is not None
    conn.close()

def test_module_globals():
    assert dbapi.apilevel == "2.0"
    assert dbapi.paramstyle == "qmark"
    assert dbapi.sqlite_version_info >= (3, 0, 0)
    assert issubclass(dbapi.IntegrityError, dbapi.DatabaseError)
    assert issubclass(dbapi.DatabaseError, dbapi.Error)

def test_ddl_and_insert(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()

    cur.execute("CREATE TABLE foo (id INTEGER, name TEXT)")
    cur.execute("INSERT INTO foo VALUES (1, 'alice')")
    cur.execute("INSERT INTO foo VALUES (2, 'bob')")

    conn.commit()
    conn.close()

    # Reopen and verify
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("SELECT * FROM foo ORDER BY id")
    rows = cur.fetchall()

    assert len(rows) == 2
    assert rows[0] == (1, 'alice')
    assert rows[1] == (2, 'bob')
    assert [d[0] for d in cur.description] == ["id", "name"]

    conn.close()

def test_parameters(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE foo (id INTEGER, val TEXT)")

    # Positional args
    cur.execute("INSERT INTO foo VALUES (?, ?)", (1, "a"))

    # Named args
    cur.execute("INSERT INTO foo VALUES (:id, :val)", {"id": 2, "val": "b"})

    conn.commit()

    cur.execute("SELECT * FROM foo WHERE id = ?", (1,))
    row = cur.fetchone()
    assert row == (1, "a")

    cur.execute("SELECT * FROM foo WHERE id = :target", {"target": 2})
    row = cur.fetchone()
    assert row == (2, "b")

    conn.close()

def test_parameters_reject_mixed_styles(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE foo (id INTEGER, val TEXT)")
    conn.commit()

    # Named params + qmark placeholders
    with pytest.raises(dbapi.ProgrammingError):
        cur.execute("SELECT * FROM foo WHERE id = ? AND val = :val", {"val": "x"})

    # Positional params + named placeholders
    with pytest.raises(dbapi.ProgrammingError):
        cur.execute("SELECT * FROM foo WHERE id = :id", (1,))

    conn.close()

def test_parameter_count_mismatch(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    with pytest.raises(dbapi.ProgrammingError):
        cur.execute("SELECT ?, ?", (1,))
    with pytest.raises(dbapi.ProgrammingError):
        cur.execute("SELECT :missing", {"other": 1})
    conn.close()

def test_parameters_named_reuse(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE foo (id INTEGER, val TEXT)")
    cur.execute("INSERT INTO foo VALUES (1, 'a')")
    cur.execute("INSERT INTO foo VALUES (2, 'b')")
    conn.commit()

    # The same named parameter appears multiple times; SQLite gives it one slot.
    cur.execute("SELECT id FROM foo WHERE id = :target OR id = :target ORDER BY id", {"target": 2})
    rows = cur.fetchall()
    assert rows == [(2,)]

    conn.close()

def test_fetchmany(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE foo (id INTEGER)")

    for i in range(10):
        cur.execute("INSERT INTO foo VALUES (?)", (i,))
    conn.commit()

    cur.execute("SELECT * FROM foo ORDER BY id")
    batch = cur.fetchmany(3)
    assert len(batch) == 3
    assert batch[0][0] == 0

    batch = cur.fetchmany(3)
    assert len(batch) == 3
    assert batch[0][0] == 3

    batch = cur.fetchmany(5) # Remaining 4
    assert len(batch) == 4

    assert cur.fetchone() is None

    conn.close()

def test_iteration(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.execute("SELECT 1 UNION ALL SELECT 2")
    assert [r[0] for r in cur] == [1, 2]
    conn.close()

def test_rowcount_and_lastrowid(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE foo (id INTEGER PRIMARY KEY, val TEXT)")
    assert cur.rowcount == 0

    cur.execute("INSERT INTO foo (val) VALUES ('a')")
    assert cur.rowcount == 1
    assert cur.lastrowid == 1

    cur.executemany("INSERT INTO foo (val) VALUES (?)", [("b",), ("c",)])
    assert cur.rowcount == 2
    assert cur.lastrowid == 3

    cur.execute("UPDATE foo SET val = 'z'")
    assert cur.rowcount == 3

    cur.execute("SELECT * FROM foo")
    assert cur.rowcount == -1

    conn.close()

def test_types(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE types (i INTEGER, f REAL, t TEXT, b BLOB, bool INTEGER, n TEXT)")

    blob_data = b'\x00\x01\x02'
    cur.execute("INSERT INTO types VALUES (?, ?, ?, ?, ?, ?)",
                (123, 1.23, "hello", blob_data, True, None))
    conn.commit()

    cur.execute("SELECT * FROM types")
    row = cur.fetchone()

    assert row[0] == 123
    assert isinstance(row[1], float)
    assert abs(row[1] - 1.23) < 0.0001
    assert row[2] == "hello"
    assert row[3] == blob_data
    assert row[4] == 1
    assert row[5] is None

    conn.close()

def test_error_includes_sql_and_code(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()

    with pytest.raises(dbapi.ProgrammingError) as excinfo:
        cur.execute("SELEC 1")

    msg = str(excinfo.value)
    assert "Context:" in msg
    assert "native_code" in msg
    assert "\"sql\":" in msg

    conn.close()

def test_integrity_error(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE foo (id INTEGER PRIMARY KEY)")
    cur.execute("INSERT INTO foo VALUES (1)")

    with pytest.raises(dbapi.IntegrityError) as excinfo:
        cur.execute("INSERT INTO foo VALUES (?)", (1,))
    assert excinfo.value.sqlite_errorname.startswith("CONSTRAINT")

    # The cursor stays usable after a failed step.
    cur.execute("INSERT INTO foo VALUES (?)", (2,))
    cur.execute("SELECT count(*) FROM foo")
    assert cur.fetchone() == (2,)

    conn.close()

def test_transactions(db_path):
    conn = dbapi.connect(db_path)
    conn.execute("CREATE TABLE foo (id INTEGER)")
    assert not conn.in_transaction

    conn.execute("BEGIN")
    conn.execute("INSERT INTO foo VALUES (1)")
    assert conn.in_transaction
    conn.rollback()
    assert not conn.in_transaction
    assert conn.execute("SELECT count(*) FROM foo").fetchone() == (0,)

    conn.execute("BEGIN")
    conn.execute("INSERT INTO foo VALUES (1)")
    conn.commit()
    assert conn.execute("SELECT count(*) FROM foo").fetchone() == (1,)

    conn.close()

def test_executescript(db_path):
    conn = dbapi.connect(db_path)
    conn.executescript("""
        CREATE TABLE foo (id INTEGER);
        INSERT INTO foo VALUES (1);
        INSERT INTO foo VALUES (2);
    """)
    assert conn.execute("SELECT sum(id) FROM foo").fetchone() == (3,)
    conn.close()

def test_closed_connection(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    conn.close()
    conn.close()
    with pytest.raises(dbapi.ProgrammingError):
        conn.cursor()
    with pytest.raises(dbapi.ProgrammingError):
        cur.execute("SELECT 1")

def test_context_manager_commits_and_closes(db_path):
    with dbapi.connect(db_path) as conn:
        conn.execute("CREATE TABLE foo (id INTEGER)")
        conn.execute("BEGIN")
        conn.execute("INSERT INTO foo VALUES (1)")

    conn = dbapi.connect(db_path)
    assert conn.execute("SELECT id FROM foo").fetchall() == [(1,)]
    conn.close()

def test_open_failure(tmp_path):
    with pytest.raises(dbapi.OperationalError):
        dbapi.connect(str(tmp_path / "missing" / "x.db"))
