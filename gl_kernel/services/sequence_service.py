"""
SequenceService -- per-prefix document numbering via locked counter rows.

Responsibility:
    Issues human-readable, gap-free numbers such as ``JE-00001`` for
    journal entries and raw integers for the audit log.  Each prefix owns
    one counter row that is read under ``SELECT ... FOR UPDATE``, so
    concurrent allocations for the same prefix serialize while unrelated
    prefixes proceed independently.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by JournalService and ReversalService (entry numbers) and
    AuditorService (audit sequence).

Invariants enforced:
    - No two committed allocations for a prefix return the same number.
    - The increment is part of the caller's transaction; a rollback
      returns the number.  There is no in-process cache.
    - The aggregate-max-plus-one pattern is never used.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and a re-read under lock).

Audit relevance:
    Allocation is logged at DEBUG with prefix and value.
"""

from sqlalchemy import Integer, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from gl_kernel.db.base import Base
from gl_kernel.logging_config import get_logger

logger = get_logger("services.sequence")

DEFAULT_PADDING = 5


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named prefix with its last issued value.
    """

    __tablename__ = "sequence_counters"

    # Prefix, e.g. "JE" or "AUDIT"
    prefix: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    padding_length: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=DEFAULT_PADDING,
    )


class SequenceService:
    """
    Service for issuing transactional sequence numbers.

    Contract:
        ``next_value(prefix)`` returns the next integer for the prefix and
        ``next_number(prefix)`` renders it as ``PREFIX-000NN``.

    Guarantees:
        - Locked counter row serializes concurrent allocations per prefix.
        - Values are strictly increasing and gap-free among committed
          transactions.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        with session.begin():
            number = sequence_service.next_number("JE")   # "JE-00042"
    """

    JOURNAL_ENTRY = "JE"
    AUDIT_LOG = "AUDIT"

    def __init__(self, session: Session, default_padding: int = DEFAULT_PADDING):
        self._session = session
        self._default_padding = default_padding

    def _lock_counter(self, prefix: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.prefix == prefix)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _allocate(self, prefix: str) -> SequenceCounter:
        """Lock (creating on first use) and increment the prefix's counter."""
        counter = self._lock_counter(prefix)

        if counter is None:
            # First use of this prefix.  Another transaction may create it
            # simultaneously, so insert inside a savepoint.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(
                    prefix=prefix,
                    current_value=0,
                    padding_length=self._default_padding,
                )
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"prefix": prefix},
                )
                savepoint.rollback()
                counter = self._lock_counter(prefix)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"prefix": prefix, "value": counter.current_value},
        )
        return counter

    def next_value(self, prefix: str) -> int:
        """
        Get the next integer value for a prefix.

        Preconditions:
            - ``prefix`` is a non-empty string.
            - The caller is within an active database transaction.

        Postconditions:
            - Returns an integer > 0 greater than any previously committed
              value for this prefix.
            - The counter row is locked until the transaction completes.
        """
        if not prefix:
            raise ValueError("Sequence prefix must be non-empty")
        return self._allocate(prefix).current_value

    def next_number(self, prefix: str) -> str:
        """
        Get the next formatted number for a prefix, e.g. ``JE-00001``.

        The counter's own padding_length (fixed when the counter was first
        created) determines the zero padding.
        """
        if not prefix:
            raise ValueError("Sequence prefix must be non-empty")
        counter = self._allocate(prefix)
        return format_number(prefix, counter.current_value, counter.padding_length)

    def current_value(self, prefix: str) -> int | None:
        """
        Get the last issued value without incrementing.

        Returns:
            Current value, or None if the prefix has never been used.
        """
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.prefix == prefix)
        ).scalar_one_or_none()

        return counter.current_value if counter else None


def format_number(prefix: str, value: int, padding: int) -> str:
    """Render ``prefix-value`` with the value zero-padded to ``padding`` digits."""
    return f"{prefix}-{str(value).zfill(padding)}"
