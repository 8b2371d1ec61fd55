"""
salon/ledger.py

Credit ledger operations for StylePreview.

The salon row holds the balance; the ledger table is its audit trail:
    - Deductions are one conditional UPDATE (check and decrement together)
    - Every change is recorded with balance_after
    - Admin actions record who did it

Operations:
    - get_balance(salon_id) -> int
    - deduct_credits(salon_id, amount, ...) -> int
    - refund_credits(salon_id, amount, ...) -> int
    - grant_credits(salon_id, amount, reason, ...) -> int
    - set_balance(salon_id, new_balance, admin_user_id) -> int
    - get_salon_history(salon_id, limit, offset) -> list

Design principles:
    1. Never read-then-write a balance: the database does the arithmetic
    2. A failed deduction leaves the balance untouched
    3. No retries. A failure ends the caller's workflow

Version History:
    2025-11-04: Initial implementation
    2025-11-19: Compensating refunds for failed generations
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from salon.db import get_db
from salon.models import Salon, CreditLedger, CreditReason
from salon.errors import (
    SalonNotFound, InsufficientCredits, InvalidField, PersistenceError
)


# =============================================================================
# BALANCE QUERIES
# =============================================================================

def _current_credits(salon_id: str) -> Optional[int]:
    """Balance straight from the database, None for an unknown salon."""
    db = get_db()
    return db.execute(
        select(Salon.credits).where(Salon.id == salon_id)
    ).scalar_one_or_none()


def _check_amount(amount) -> None:
    # bool is an int subclass; True is not one credit
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidField('amount', 'amount must be a positive integer')


def get_balance(salon_id: str) -> int:
    """
    Get current credit balance for a salon.

    Raises:
        SalonNotFound: unknown salon id
    """
    balance = _current_credits(salon_id)
    if balance is None:
        raise SalonNotFound(salon_id)
    return balance


# =============================================================================
# CREDIT OPERATIONS
# =============================================================================

def deduct_credits(
    salon_id: str,
    amount: int,
    notes: Optional[str] = None,
    generation_id: Optional[str] = None
) -> int:
    """
    Spend credits for a generation.

    UPDATE salons SET credits = credits - :amount
     WHERE id = :id AND credits >= :amount

    Only an UPDATE touching exactly one row counts as success, so two
    concurrent requests can never both spend the last credit.

    Args:
        salon_id: Salon being charged
        amount: Credits to spend (positive)
        notes: Optional notes (e.g. generation type)
        generation_id: Id the resulting generation will carry

    Returns:
        New balance

    Raises:
        SalonNotFound: unknown salon id
        InsufficientCredits: balance below amount (nothing changed)
    """
    _check_amount(amount)

    db = get_db()

    try:
        result = db.execute(
            update(Salon)
            .where(Salon.id == salon_id, Salon.credits >= amount)
            .values(credits=Salon.credits - amount)
        )

        if result.rowcount != 1:
            db.rollback()
            available = _current_credits(salon_id)
            if available is None:
                raise SalonNotFound(salon_id)
            print(f"[Ledger] Insufficient balance for salon {salon_id}: {available} < {amount}")
            raise InsufficientCredits(required=amount, available=available)

        new_balance = db.execute(
            select(Salon.credits).where(Salon.id == salon_id)
        ).scalar_one()

        db.add(CreditLedger(
            salon_id=salon_id,
            delta=-amount,
            reason=CreditReason.USAGE,
            balance_after=new_balance,
            generation_id=generation_id,
            notes=notes,
        ))
        db.commit()

    except SQLAlchemyError as e:
        db.rollback()
        print(f"[Ledger] Failed to deduct credits: {e}")
        raise PersistenceError('Failed to deduct credits') from e

    print(f"[Ledger] Spent {amount} credit(s) for salon {salon_id}. Balance: {new_balance}")
    return new_balance


def _credit(
    salon_id: str,
    amount: int,
    reason: str,
    notes: Optional[str] = None,
    generation_id: Optional[str] = None,
    created_by: Optional[str] = None
) -> int:
    """Add credits in one UPDATE and record the entry."""
    db = get_db()

    try:
        result = db.execute(
            update(Salon)
            .where(Salon.id == salon_id)
            .values(credits=Salon.credits + amount)
        )
        if result.rowcount != 1:
            db.rollback()
            raise SalonNotFound(salon_id)

        new_balance = db.execute(
            select(Salon.credits).where(Salon.id == salon_id)
        ).scalar_one()

        db.add(CreditLedger(
            salon_id=salon_id,
            delta=amount,
            reason=reason,
            balance_after=new_balance,
            generation_id=generation_id,
            notes=notes,
            created_by=created_by,
        ))
        db.commit()

    except SQLAlchemyError as e:
        db.rollback()
        print(f"[Ledger] Failed to credit salon {salon_id}: {e}")
        raise PersistenceError('Failed to update credits') from e

    print(f"[Ledger] Credited {amount} to salon {salon_id} ({reason}). Balance: {new_balance}")
    return new_balance


def refund_credits(
    salon_id: str,
    amount: int,
    notes: Optional[str] = None,
    generation_id: Optional[str] = None
) -> int:
    """
    Give back credits charged for a generation that produced nothing.

    Returns:
        New balance
    """
    _check_amount(amount)

    return _credit(
        salon_id,
        amount,
        CreditReason.REFUND,
        notes=notes or 'Refund for failed generation',
        generation_id=generation_id,
    )


def grant_credits(
    salon_id: str,
    amount: int,
    reason: str = CreditReason.ADMIN_GRANT,
    notes: Optional[str] = None,
    created_by: Optional[str] = None
) -> int:
    """
    Grant credits to a salon (signup bonus, admin top-up).

    Args:
        salon_id: Salon to credit
        amount: Number of credits (positive)
        reason: Reason code (CreditReason.*)
        notes: Optional notes
        created_by: Admin user id (for admin grants)

    Returns:
        New balance
    """
    _check_amount(amount)

    return _credit(salon_id, amount, reason, notes=notes, created_by=created_by)


# =============================================================================
# ADMIN OPERATIONS
# =============================================================================

def set_balance(
    salon_id: str,
    new_balance: int,
    admin_user_id: Optional[str],
    notes: Optional[str] = None
) -> int:
    """
    Admin adjustment to an exact balance.

    Records the difference as one admin_adjust entry. No entry is written
    when the balance is already new_balance.
    """
    if not isinstance(new_balance, int) or isinstance(new_balance, bool) or new_balance < 0:
        raise InvalidField('credits', 'credits must be a non-negative integer')

    db = get_db()

    try:
        salon = db.get(Salon, salon_id, with_for_update=True)
        if salon is None:
            db.rollback()
            raise SalonNotFound(salon_id)

        delta = new_balance - salon.credits
        if delta == 0:
            db.rollback()
            return new_balance

        salon.credits = new_balance
        db.add(CreditLedger(
            salon_id=salon_id,
            delta=delta,
            reason=CreditReason.ADMIN_ADJUST,
            balance_after=new_balance,
            notes=notes,
            created_by=admin_user_id,
        ))
        db.commit()

    except SQLAlchemyError as e:
        db.rollback()
        print(f"[Ledger] Failed to set balance: {e}")
        raise PersistenceError('Failed to update credits') from e

    print(f"[Ledger] Admin set salon {salon_id} balance to {new_balance} ({delta:+d})")
    return new_balance


# =============================================================================
# LEDGER QUERIES
# =============================================================================

def get_salon_history(
    salon_id: str,
    limit: int = 50,
    offset: int = 0
) -> list:
    """
    Get credit history for a salon, newest first.

    Args:
        salon_id: Salon's id
        limit: Max entries to return
        offset: Pagination offset

    Returns:
        List of CreditLedger entries
    """
    db = get_db()

    return db.query(CreditLedger).filter(
        CreditLedger.salon_id == salon_id
    ).order_by(
        CreditLedger.created_at.desc()
    ).limit(limit).offset(offset).all()
