"""
Sequential document numbering (TD-YYYY-NNNN) with retry on unique collisions.

Two requests can read the same "last" number and race to insert it. The
loser hits the unique index, rolls back its savepoint and tries the next
sequence after a short, linearly growing pause.
"""

import re
import time
import logging
from datetime import datetime
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database.models import Order, Invoice

logger = logging.getLogger(__name__)

NUMBER_PREFIX = 'TD'
MAX_ATTEMPTS = 5
RETRY_DELAY = 0.1  # seconds, multiplied by attempt number
SEQUENCE_PATTERN = re.compile(r'TD-\d{4}-(\d+)')

T = TypeVar('T')


class NumberAllocationError(Exception):
    """Raised when a unique number could not be allocated after all retries."""
    def __init__(self, column: str, attempts: int):
        self.column = column
        self.attempts = attempts
        super().__init__(f"Failed to allocate unique {column} after {attempts} attempts")


def format_number(year: int, sequence: int) -> str:
    return f"{NUMBER_PREFIX}-{year}-{sequence:04d}"


def parse_sequence(number: Optional[str]) -> int:
    """Extract the numeric sequence from a TD-YYYY-NNNN string (0 when unparseable)."""
    match = SEQUENCE_PATTERN.search(number or '')
    return int(match.group(1)) if match else 0


def is_unique_violation(error: IntegrityError, column: str) -> bool:
    """True when the integrity error is a duplicate on ``column``."""
    text = str(error.orig).lower()
    duplicate = 'unique' in text or 'duplicate' in text
    return duplicate and column.lower() in text


def next_order_number(session: Session, attempt: int = 0, year: Optional[int] = None) -> str:
    """Highest sequence used this year, plus one, plus the retry offset."""
    year = year or datetime.now().year
    prefix = f"{NUMBER_PREFIX}-{year}-"
    numbers = session.query(Order.order_number).filter(Order.order_number.like(f"{prefix}%")).all()
    highest = max((parse_sequence(number) for (number,) in numbers), default=0)
    return format_number(year, highest + 1 + attempt)


def next_invoice_number(session: Session, attempt: int = 0) -> str:
    """Sequence of the most recently created invoice, plus one, plus the retry offset."""
    last = session.query(Invoice.invoice_number).order_by(Invoice.created_at.desc()).first()
    sequence = parse_sequence(last[0]) if last else 0
    return format_number(datetime.now().year, sequence + 1 + attempt)


def allocate_with_retry(session: Session, build: Callable[[int], T], column: str,
                        max_attempts: int = MAX_ATTEMPTS) -> T:
    """
    Run ``build(attempt)`` in a savepoint and flush, retrying on collisions.

    Args:
        session: Active session; the outer transaction is left open
        build: Callable that adds the new row(s) to the session and returns the result
        column: Unique column whose violation triggers a retry
        max_attempts: Total attempts before giving up

    Returns:
        Whatever ``build`` returned on the successful attempt

    Raises:
        NumberAllocationError: every attempt collided
        IntegrityError: any violation other than a duplicate on ``column``
    """
    last_error = None
    for attempt in range(max_attempts):
        savepoint = session.begin_nested()
        try:
            result = build(attempt)
            session.flush()
            savepoint.commit()
            if attempt:
                logger.info(f"Allocated {column} on attempt {attempt + 1}")
            return result
        except IntegrityError as e:
            savepoint.rollback()
            if not is_unique_violation(e, column):
                raise
            last_error = e
            logger.warning(f"Duplicate {column} detected, retrying (attempt {attempt + 1}/{max_attempts})")
            time.sleep(RETRY_DELAY * (attempt + 1))
        except Exception:
            if savepoint.is_active:
                savepoint.rollback()
            raise

    raise NumberAllocationError(column, max_attempts) from last_error
