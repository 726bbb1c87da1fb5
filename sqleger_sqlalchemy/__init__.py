from .dialect import SqlegerDialect

__all__ = ["SqlegerDialect"]
