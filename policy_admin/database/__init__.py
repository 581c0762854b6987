"""
Persistence backends. `postgres` is the in-memory stand-in, `postgres_real`
the SQLAlchemy implementation; both expose the same methods.
"""
from .filters import RecordFilter

__all__ = ["RecordFilter"]
