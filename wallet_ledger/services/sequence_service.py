"""
SequenceService -- monotonic transfer sequence allocation via a counter row.

Responsibility:
    Provides strictly monotonically increasing sequence numbers for
    transfers.  Uses a dedicated counter table so the next value never
    depends on the contents of the transfers table.

Architecture position:
    Services -- imperative shell infrastructure.
    Called by TransferService for every insert, reversals and scheduled
    occurrences included.

Invariants enforced:
    - Sequence monotonicity: the SQL aggregate-max-plus-one anti-pattern is
      FORBIDDEN.  The counter row is the sole source of truth for the next
      value.
    - Transactional: the increment is flushed in the caller's transaction
      together with the transfer insert.  A rollback returns the value.

Failure modes:
    - Concurrent writers on the same SQLite file are not coordinated; the
      UNIQUE constraint on transfers.sequence turns a lost race into an
      IntegrityError instead of a duplicate.
"""

from sqlalchemy import String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from wallet_ledger.db.base import Base
from wallet_ledger.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.  Only
    ``transfer_sequence`` exists today.
    """

    __tablename__ = "sequence_counter"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)

    value: Mapped[int] = mapped_column(nullable=False, default=0)


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Contract:
        Accepts a sequence name and returns the next strictly-monotonic
        integer value.  The increment is only committed when the caller's
        transaction commits.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        seq = sequence_service.next_value(SequenceService.TRANSFER_SEQUENCE)
        session.add(Transfer(sequence=seq, ...))
        session.flush()
    """

    TRANSFER_SEQUENCE = "transfer_sequence"

    def __init__(self, session: Session):
        self._session = session

    def _counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str = TRANSFER_SEQUENCE) -> int:
        """
        Increment the named counter and return the new value.

        The counter row is created on first use, so the first value is 1.

        Postconditions:
            - Returns an integer > 0 that is strictly greater than any
              previously returned value for this sequence name.
        """
        counter = self._counter(sequence_name)
        if counter is None:
            counter = SequenceCounter(name=sequence_name, value=0)
            self._session.add(counter)

        counter.value += 1
        assert counter.value > 0, "sequence value must be strictly positive"
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.value},
        )
        return counter.value

    def current_value(self, sequence_name: str = TRANSFER_SEQUENCE) -> int | None:
        """
        Current value of a sequence without incrementing.

        Returns:
            Current value, or None if the counter row does not exist.
        """
        counter = self._counter(sequence_name)
        return counter.value if counter else None

    def initialize_sequences(self) -> None:
        """
        Seed every well-known counter row at 0 if it is missing.

        Called during database setup.
        """
        for name in [self.TRANSFER_SEQUENCE]:
            if self._counter(name) is None:
                self._session.add(SequenceCounter(name=name, value=0))

        self._session.flush()
