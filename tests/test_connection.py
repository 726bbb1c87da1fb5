import os
import pytest
import sqleger
from sqleger import Connection, OpenFlag, Result, ResultError, Statement, is_error


def test_default_constructor_is_empty():
    d = Connection()
    assert d.c_ptr() is None
    assert not d
    assert d.close() == Result.OK
    assert d.close_v2() == Result.OK

def test_open_memory():
    d = Connection(":memory:")
    assert d
    assert d.close() == Result.OK
    assert not d

def test_open_v2_status(db_path):
    d = Connection()
    r = d.open_v2(db_path)
    assert r == Result.OK
    assert d
    assert os.path.exists(db_path)
    assert d.filename().endswith("test.db")
    assert d.close() == Result.OK

def test_open_v2_failure_keeps_handle_for_errmsg(tmp_path):
    d = Connection()
    r = d.open_v2(str(tmp_path / "missing" / "x.db"), OpenFlag.READWRITE)
    assert is_error(r)
    assert r.primary == Result.CANTOPEN
    # SQLite hands back a handle so the failure can be explained.
    assert d
    assert d.errmsg()
    assert d.close_v2() == Result.OK
    assert not d

def test_open_failure_raises(tmp_path):
    with pytest.raises(ResultError) as excinfo:
        Connection(str(tmp_path / "missing" / "x.db"), OpenFlag.READWRITE)
    assert excinfo.value.code.primary == Result.CANTOPEN

def test_take_c_ptr(db):
    p1 = db.c_ptr()
    p2 = db.take_c_ptr()
    assert p1 == p2
    assert db.c_ptr() is None
    assert not db
    # Ownership moved to us.
    assert sqleger.load_library().sqlite3_close_v2(p2) == Result.OK

def test_move_construction(db):
    p = db.c_ptr()
    d2 = Connection(db)
    assert d2.c_ptr() == p
    assert db.c_ptr() is None
    d2.close_v2()

def test_move_assignment_into_open_connection(db):
    p = db.c_ptr()
    d2 = Connection(":memory:")
    d2.move_from(db)
    assert d2.c_ptr() == p
    assert db.c_ptr() is None
    d2.close_v2()

def test_close_busy_with_open_statement(db):
    s = Statement(db, "SELECT 1")
    assert db.close() == Result.BUSY
    assert db
    assert s.finalize() == Result.OK
    assert db.close() == Result.OK

def test_context_manager_closes():
    with Connection(":memory:") as d:
        assert d
    assert not d

def test_prepare_on_empty_connection():
    d = Connection()
    s = Statement()
    assert d.prepare_v2("SELECT 1", s) == Result.MISUSE
    assert not s

def test_exec_and_changes(db):
    assert db.exec("CREATE TABLE t(x INTEGER); INSERT INTO t VALUES (1); INSERT INTO t VALUES (2);") == Result.OK
    assert db.changes() == 1
    assert db.total_changes() == 2
    assert db.last_insert_rowid() == 2
    assert db.get_autocommit()

def test_exec_error(db):
    r = db.exec("NOT SQL")
    assert is_error(r)
    assert "syntax error" in db.errmsg()
    assert db.errcode() == Result.ERROR

def test_autocommit_tracks_transactions(db):
    assert db.exec("BEGIN") == Result.OK
    assert not db.get_autocommit()
    assert db.exec("COMMIT") == Result.OK
    assert db.get_autocommit()

def test_extended_result_codes(db):
    assert db.extended_result_codes(True) == Result.OK
    assert db.exec("CREATE TABLE t(x INTEGER UNIQUE); INSERT INTO t VALUES (1)") == Result.OK
    r = db.exec("INSERT INTO t VALUES (1)")
    assert r == Result.CONSTRAINT_UNIQUE
    assert db.extended_errcode() == Result.CONSTRAINT_UNIQUE

def test_busy_timeout(db):
    assert db.busy_timeout(100) == Result.OK
    assert Connection().busy_timeout(100) == Result.MISUSE

def test_prepare_bounded_writable_memoryview(db):
    s = Statement()
    assert db.prepare_v2(memoryview(bytearray(b"SELECT 12"))[:8], s) == Result.OK
    assert s.sql() == "SELECT 1"

def test_prepare_bounded_readonly_memoryview(db):
    s = Statement()
    assert db.prepare_v2(memoryview(b"SELECT 12")[:8], s) == Result.OK
    assert s.sql() == "SELECT 1"

def test_prepare_bytearray(db):
    s = Statement()
    assert db.prepare_v2(bytearray(b"SELECT 3"), s) == Result.OK
    assert s.step() == Result.ROW
    assert s.column_int(0) == 3
