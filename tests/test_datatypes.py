import datetime
import decimal
import uuid
import pytest
import sqleger.dbapi as dbapi


def test_bool(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE t_bool (b BOOLEAN)")

    cur.execute("INSERT INTO t_bool VALUES (?)", (True,))
    cur.execute("INSERT INTO t_bool VALUES (?)", (False,))

    cur.execute("SELECT b FROM t_bool")
    rows = cur.fetchall()
    # SQLite has no boolean storage class
    assert rows == [(1,), (0,)]

    conn.close()

def test_uuid(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE t_uuid (u BLOB)")

    u1 = uuid.uuid4()
    cur.execute("INSERT INTO t_uuid VALUES (?)", (u1,))

    cur.execute("SELECT u FROM t_uuid")
    r1 = cur.fetchone()[0]
    assert isinstance(r1, bytes)
    assert len(r1) == 16
    assert r1 == u1.bytes

    conn.close()

def test_blob(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE t_blob (id INTEGER, data BLOB)")

    blobs = [
        b'',
        b'\x00',
        b'\xDE\xAD\xBE\xEF',
        bytes(range(256)),
        bytearray(b'mutable'),
        memoryview(b'viewed'),
    ]

    for i, b in enumerate(blobs):
        cur.execute("INSERT INTO t_blob VALUES (?, ?)", (i, b))

    cur.execute("SELECT data FROM t_blob ORDER BY id")
    rows = cur.fetchall()
    assert len(rows) == len(blobs)

    for i, expected in enumerate(blobs):
        assert rows[i][0] == bytes(expected), f"blob[{i}] mismatch"

    cur.execute("SELECT typeof(data) FROM t_blob WHERE id = 0")
    assert cur.fetchone() == ("blob",)

    conn.close()

def test_text_roundtrip_unicode(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE t_text (s TEXT)")
    values = ["", "plain", "héllo wörld", "日本語", "a\0b"]
    for v in values:
        cur.execute("INSERT INTO t_text VALUES (?)", (v,))
    cur.execute("SELECT s FROM t_text ORDER BY rowid")
    assert [r[0] for r in cur.fetchall()] == values
    conn.close()

def test_int64_bounds(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    big = (1 << 63) - 1
    small = -(1 << 63)
    cur.execute("SELECT ?, ?", (big, small))
    assert cur.fetchone() == (big, small)

    with pytest.raises(dbapi.DataError):
        cur.execute("SELECT ?", (1 << 63,))

    conn.close()

def test_float(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("SELECT ?, ?", (0.25, -1e300))
    assert cur.fetchone() == (0.25, -1e300)
    conn.close()

def test_decimal(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("CREATE TABLE t_dec (d TEXT)")
    cur.execute("INSERT INTO t_dec VALUES (?)", (decimal.Decimal("12345.678900000000000001"),))
    cur.execute("SELECT d FROM t_dec")
    assert decimal.Decimal(cur.fetchone()[0]) == decimal.Decimal("12345.678900000000000001")
    conn.close()

def test_dates(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    d = datetime.date(2024, 2, 29)
    ts = datetime.datetime(2024, 2, 29, 13, 45, 1)
    t = datetime.time(13, 45, 1)
    cur.execute("SELECT ?, ?, ?", (d, ts, t))
    assert cur.fetchone() == ("2024-02-29", "2024-02-29 13:45:01", "13:45:01")
    conn.close()

def test_unsupported_type(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    with pytest.raises(dbapi.ProgrammingError):
        cur.execute("SELECT ?", (object(),))
    conn.close()

def test_null(db_path):
    conn = dbapi.connect(db_path)
    cur = conn.cursor()
    cur.execute("SELECT ?, NULL", (None,))
    assert cur.fetchone() == (None, None)
    conn.close()
