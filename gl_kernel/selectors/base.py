"""
Module: gl_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors are the query side of the kernel: structured read access to
    ledger data without any mutation capability.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/dtos.py.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller and
      never add, delete, flush or commit.
    - DTO return convention: selectors return frozen dataclasses, not ORM
      instances.

Audit relevance:
    Selectors are the canonical read path for balances.  Every figure is
    derived from posted journal lines at query time; there are no stored
    balances.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from gl_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs.  They MUST NOT mutate any data.

    Non-goals:
        - BaseSelector does NOT define query methods; subclasses implement
          journal, ledger and subledger queries.
    """

    def __init__(self, session: Session):
        self.session = session
