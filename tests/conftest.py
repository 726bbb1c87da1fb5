import pytest
import sqleger
from sqlalchemy.dialects import registry

registry.register("sqleger.dbapi", "sqleger_sqlalchemy.dialect", "SqlegerDialect")
registry.register("sqleger", "sqleger_sqlalchemy.dialect", "SqlegerDialect")

@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")

@pytest.fixture
def db():
    d = sqleger.Connection(":memory:")
    yield d
    d.close_v2()
