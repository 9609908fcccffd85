"""
Running numbers for document identifiers.

Material requests (``MRS-24-00001``), deployment transmittals
(``HQ-202401-001``) and asset transfers draw their numbers from one
``sequence_counters`` row per series.  The row is read ``FOR UPDATE`` so
concurrent requests serialise on it; numbers are never derived from a
max-plus-one query over the document tables.  An allocation becomes
visible to others only when the caller's transaction commits.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from backoffice_kernel.db.base import Base
from backoffice_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """Last number handed out for a series such as ``mr:MRS-24``."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


def format_document_number(series: str, year: int, value: int, width: int = 5) -> str:
    """``{series}-{YY}-{NNNNN}``, e.g. ``MRS-24-00017``."""
    return f"{series}-{year % 100:02d}-{value:0{width}d}"


class SequenceService:
    """Allocates numbers inside the caller's transaction; never commits."""

    def __init__(self, session: Session):
        self._session = session

    def _counter(self, sequence_name: str, *, lock: bool = False) -> SequenceCounter | None:
        stmt = select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self._session.execute(stmt).scalar_one_or_none()

    def _create_counter(self, sequence_name: str) -> SequenceCounter:
        """Insert a zeroed counter, or lock the one a concurrent caller just inserted."""
        savepoint = self._session.begin_nested()
        counter = SequenceCounter(name=sequence_name, current_value=0)
        try:
            self._session.add(counter)
            self._session.flush()
        except IntegrityError:
            savepoint.rollback()
            logger.debug("sequence_counter_race_retry", extra={"sequence_name": sequence_name})
            existing = self._counter(sequence_name, lock=True)
            assert existing is not None
            return existing
        savepoint.commit()
        return counter

    def next_value(self, sequence_name: str) -> int:
        """Increment and return the counter; the first value of a series is 1."""
        counter = self._counter(sequence_name, lock=True) or self._create_counter(sequence_name)
        counter.current_value += 1
        self._session.flush()
        logger.debug("sequence_allocated", extra={
            "sequence_name": sequence_name,
            "value": counter.current_value,
        })
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Last allocated value, or None for a series never used."""
        counter = self._counter(sequence_name)
        return counter.current_value if counter else None

    def peek_next(self, sequence_name: str) -> int:
        return (self.current_value(sequence_name) or 0) + 1

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """Set a series to ``value``.  Tests and data migration only."""
        counter = self._counter(sequence_name)
        if counter is None:
            self._session.add(SequenceCounter(name=sequence_name, current_value=value))
        else:
            counter.current_value = value
        self._session.flush()
        logger.warning("sequence_reset", extra={"sequence_name": sequence_name, "value": value})
