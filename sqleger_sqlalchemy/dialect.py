from sqlalchemy import exc, pool
from sqlalchemy.dialects.sqlite.base import SQLiteDialect

import sqleger.dbapi


class SqlegerDialect(SQLiteDialect):
    # SQL generation, DDL and reflection are SQLite's; only the driver differs.
    name = "sqlite"
    driver = "sqleger"

    supports_statement_cache = True
    supports_unicode_statements = True
    supports_unicode_binds = True

    default_paramstyle = "qmark"

    @classmethod
    def import_dbapi(cls):
        return sqleger.dbapi

    @classmethod
    def get_pool_class(cls, url):
        # Every new connection to :memory: is a new, empty database.
        if url.database in (None, "", ":memory:"):
            return pool.SingletonThreadPool
        return pool.QueuePool

    def create_connect_args(self, url):
        # url is sqleger:////abs/path/to.db, sqleger:///rel.db or sqleger://
        opts = dict(url.query)  # Convert to mutable dict
        path = url.database or ":memory:"

        if "timeout" in opts:
            opts["timeout"] = float(opts["timeout"])
        if "stmt_cache_size" in opts:
            opts["stmt_cache_size"] = int(opts["stmt_cache_size"])
        if "uri" in opts:
            opts["uri"] = opts["uri"].lower() in {"1", "true", "yes", "on"}

        unknown = set(opts) - {"timeout", "stmt_cache_size", "uri"}
        if unknown:
            raise exc.ArgumentError(f"Unknown sqleger connect option(s): {', '.join(sorted(unknown))}")

        return ([path], opts)

    def is_disconnect(self, e, connection, cursor):
        return isinstance(e, self.dbapi.ProgrammingError) and "Cannot operate on a closed database." in str(e)

    def do_begin(self, dbapi_connection):
        # The driver autocommits until BEGIN is issued.
        if not dbapi_connection.in_transaction:
            dbapi_connection.execute("BEGIN").close()

    def do_rollback(self, dbapi_connection):
        dbapi_connection.rollback()

    def do_commit(self, dbapi_connection):
        dbapi_connection.commit()

    def do_close(self, dbapi_connection):
        dbapi_connection.close()


dialect = SqlegerDialect
