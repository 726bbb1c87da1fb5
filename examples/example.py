"""Example: sqleger handle wrappers and the DB-API 2.0 driver.

Uses the system SQLite library. Point at a specific build with:
    SQLEGER_NATIVE_LIB=/path/to/libsqlite3.so python example.py
"""

import os
import struct
import tempfile

import sqleger
import sqleger.dbapi
from sqleger import Result, Statement, ss


def handles(db_path):
    print(f"SQLite {sqleger.libversion()}")

    with sqleger.Connection(db_path) as db:
        rc = db.exec("CREATE TABLE samples (id INTEGER PRIMARY KEY, label TEXT, data BLOB, score REAL)")
        if sqleger.is_error(rc):
            raise sqleger.ResultError(rc, db.errmsg())

        # Only the first 60 bytes are SQL; the rest is never read.
        sql = ss("INSERT INTO samples (label, data, score) VALUES (?1, ?2, ?3)trailing", 60)
        with Statement(db, sql) as insert:
            for label, score in (("alpha", 0.5), ("beta", 1.25)):
                insert.bind_text(1, label)
                insert.bind_blob(2, struct.pack("=2Q", len(label), int(score * 100)))
                insert.bind_double(3, score)
                if insert.step() != Result.DONE:
                    raise sqleger.ResultError(db.errcode(), db.errmsg())
                insert.reset()

        with Statement(db, "SELECT label, data, score FROM samples ORDER BY id") as select:
            while select.step() == Result.ROW:
                label = str(ss(bytes(select.column_text(0))))
                data = struct.unpack("=2Q", select.column_blob(1))
                kept = select.column_value(2).dup()
                print(f"  {label:<6} data={data} score={kept.double()}")
                kept.free()


def driver(db_path):
    conn = sqleger.dbapi.connect(db_path)
    cursor = conn.cursor()

    cursor.executemany(
        "INSERT INTO samples (label, score) VALUES (?, ?)",
        [("gamma", 2.0), ("delta", 3.5)],
    )

    cursor.execute("SELECT count(*), sum(score) FROM samples WHERE score > :min", {"min": 1.0})
    count, total = cursor.fetchone()
    print(f"\n{count} samples above 1.0, total score {total}")

    # Transaction example.
    cursor.execute("BEGIN")
    cursor.execute("DELETE FROM samples")
    conn.rollback()

    cursor.execute("SELECT count(*) FROM samples")
    print(f"Rows after rollback: {cursor.fetchone()[0]}")

    try:
        cursor.execute("SELECT * FROM missing_table")
    except sqleger.dbapi.ProgrammingError as e:
        print(f"\nExpected failure:\n  {e}")

    cursor.close()
    conn.close()


def main():
    db_path = os.path.join(tempfile.gettempdir(), "sqleger_example.db")
    if os.path.exists(db_path):
        os.unlink(db_path)

    handles(db_path)
    driver(db_path)

    os.unlink(db_path)
    print("\nDone.")


if __name__ == "__main__":
    main()
