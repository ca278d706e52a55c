"""
Term storage client.

TermDatabase composes table-specific mixins into a single class that
provides the storage API used by the services:

    from termbank.lib.term_db import get_term_database
    db = get_term_database()          # honours TERM_STORE_BACKEND
"""

import logging
from typing import Optional

from .analyses import AnalysesMixin
from .base import BaseMixin
from .ledger import LedgerMixin
from .memory import InMemoryTermDatabase
from .terms import TermsMixin
from .unrecognized import UnrecognizedMixin

logger = logging.getLogger(__name__)


class TermDatabase(
    TermsMixin,
    LedgerMixin,
    UnrecognizedMixin,
    AnalysesMixin,
    BaseMixin,
):
    """PostgreSQL storage for the controlled vocabulary.

    Composed from table mixins:
    - BaseMixin: Connection pool, query helpers, row conversion
    - TermsMixin: standard_terms and term_surface_forms
    - LedgerMixin: term_expansion_records
    - UnrecognizedMixin: unrecognized_terms
    - AnalysesMixin: music_analyses tag columns (backfill/rollback)
    """
    pass


def get_term_database(backend: Optional[str] = None):
    """Create the storage backend named by ``backend`` or TERM_STORE_BACKEND."""
    from ..config import get_settings

    backend = (backend or get_settings().backend).lower()
    if backend == "memory":
        logger.info("Using in-memory term database")
        return InMemoryTermDatabase()
    if backend == "postgres":
        return TermDatabase()
    raise ValueError(f"Unknown term store backend: {backend}. Use 'postgres' or 'memory'")


__all__ = ["TermDatabase", "InMemoryTermDatabase", "get_term_database"]
