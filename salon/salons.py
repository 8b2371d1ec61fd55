"""
salon/salons.py

Salon (tenant) store for StylePreview.

Operations:
    - list_salons() -> list
    - get_salon(salon_id) -> Salon
    - get_salon_by_slug(slug) -> Salon
    - create_salon(...) -> Salon
    - update_salon(salon_id, updates, admin_user_id) -> Salon
    - delete_salon(salon_id)
    - update_settings(salon, services) -> Salon
    - add_hair_style(salon, name, image_url) -> HairStyle
    - remove_hair_style(salon, hair_style_id)

Starting credits are written together with their ledger entry in the
same transaction as the salon row.

Version History:
    2025-11-04: Initial implementation
    2025-11-12: Style library entries as rows
"""

import re
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from salon.db import get_db
from salon.models import Salon, HairStyle, CreditLedger, CreditReason
from salon.config import (
    SALON_STATUSES, SALON_TYPES, SALON_SERVICES,
    SalonStatus, SalonType, SalonServices,
)
from salon.errors import (
    SalonNotFound, InvalidField, MissingField,
    Conflict, PersistenceError,
)
from salon import ledger


SLUG_PATTERN = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')


# =============================================================================
# VALIDATION
# =============================================================================

def validate_slug(slug) -> str:
    if not isinstance(slug, str) or not slug.strip():
        raise MissingField('slug')
    slug = slug.strip().lower()
    if len(slug) > 100 or not SLUG_PATTERN.match(slug):
        raise InvalidField('slug', 'Slug may contain lowercase letters, digits and hyphens')
    return slug


def validate_choice(field: str, value, allowed: set) -> str:
    # JSON lists and objects are unhashable
    if not isinstance(value, str) or value not in allowed:
        raise InvalidField(field, f'Invalid {field}. Expected one of: {", ".join(sorted(allowed))}')
    return value


def validate_credits(value) -> int:
    # bool is an int subclass; JSON true/false is not a credit amount
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidField('credits', 'Invalid credits')
    return value


# =============================================================================
# QUERIES
# =============================================================================

def list_salons() -> list:
    db = get_db()
    return db.query(Salon).order_by(Salon.created_at.desc()).all()


def get_salon(salon_id: str) -> Salon:
    """
    Raises:
        SalonNotFound: unknown id
    """
    salon = get_db().get(Salon, salon_id) if salon_id else None
    if salon is None:
        raise SalonNotFound(salon_id)
    return salon


def get_salon_by_slug(slug: str) -> Salon:
    salon = get_db().query(Salon).filter_by(slug=slug).first()
    if salon is None:
        raise SalonNotFound()
    return salon


def slug_taken(slug: str, exclude_id: Optional[str] = None) -> bool:
    query = get_db().query(Salon.id).filter(Salon.slug == slug)
    if exclude_id:
        query = query.filter(Salon.id != exclude_id)
    return query.first() is not None


# =============================================================================
# MUTATIONS
# =============================================================================

def create_salon(
    name: str,
    slug: str,
    status: str = SalonStatus.ACTIVE.value,
    salon_type: str = SalonType.HAIRSALON.value,
    services: str = SalonServices.BOTH.value,
    credits: int = 0,
    owner_id: Optional[str] = None,
    credit_reason: str = CreditReason.ADMIN_GRANT,
    created_by: Optional[str] = None,
    commit: bool = True
) -> Salon:
    """
    Create a salon, optionally with starting credits.

    Args:
        credit_reason: Ledger reason for the starting credits
        commit: False leaves the transaction open for the caller (signup)

    Raises:
        MissingField / InvalidField: bad input
        Conflict: slug already in use
    """
    if not isinstance(name, str) or not name.strip():
        raise MissingField('name')
    slug = validate_slug(slug)
    validate_choice('status', status, SALON_STATUSES)
    validate_choice('type', salon_type, SALON_TYPES)
    validate_choice('services', services, SALON_SERVICES)
    validate_credits(credits)

    if slug_taken(slug):
        raise Conflict('Salon with this slug already exists', field='slug')

    db = get_db()

    try:
        salon = Salon(
            name=name.strip(),
            slug=slug,
            status=status,
            type=salon_type,
            services=services,
            credits=credits,
            owner_id=owner_id,
        )
        db.add(salon)
        db.flush()  # Need salon.id for the ledger entry

        if credits > 0:
            db.add(CreditLedger(
                salon_id=salon.id,
                delta=credits,
                reason=credit_reason,
                balance_after=credits,
                notes='Starting credits',
                created_by=created_by,
            ))

        if commit:
            db.commit()

    except SQLAlchemyError as e:
        db.rollback()
        print(f"[Salons] Failed to create salon {slug}: {e}")
        raise PersistenceError('Failed to create salon') from e

    print(f"[Salons] Created salon {slug} ({salon_type}, {credits} credits)")
    return salon


def update_salon(salon_id: str, updates: dict, admin_user_id: Optional[str] = None) -> Salon:
    """
    Partial update from the admin back-office.

    Only known fields are applied. A credits value becomes an
    admin_adjust ledger entry instead of a direct write.
    """
    salon = get_salon(salon_id)

    if 'name' in updates:
        name = updates['name']
        if not isinstance(name, str) or not name.strip():
            raise InvalidField('name')
    if 'slug' in updates:
        slug = validate_slug(updates['slug'])
        if slug != salon.slug and slug_taken(slug, exclude_id=salon.id):
            raise Conflict('Salon with this slug already exists', field='slug')
    if 'status' in updates:
        validate_choice('status', updates['status'], SALON_STATUSES)
    if 'type' in updates:
        validate_choice('type', updates['type'], SALON_TYPES)
    if 'services' in updates:
        validate_choice('services', updates['services'], SALON_SERVICES)
    if 'credits' in updates:
        validate_credits(updates['credits'])

    db = get_db()

    try:
        if 'name' in updates:
            salon.name = updates['name'].strip()
        if 'slug' in updates:
            salon.slug = validate_slug(updates['slug'])
        for field in ('status', 'type', 'services'):
            if field in updates:
                setattr(salon, field, updates[field])
        db.commit()

    except SQLAlchemyError as e:
        db.rollback()
        print(f"[Salons] Failed to update salon {salon_id}: {e}")
        raise PersistenceError('Failed to update salon') from e

    if 'credits' in updates:
        ledger.set_balance(salon.id, updates['credits'], admin_user_id, notes='Admin edit')
        db.refresh(salon)

    return salon


def delete_salon(salon_id: str) -> None:
    """Delete a salon and everything it owns."""
    salon = get_salon(salon_id)
    db = get_db()

    try:
        db.delete(salon)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        print(f"[Salons] Failed to delete salon {salon_id}: {e}")
        raise PersistenceError('Failed to delete salon') from e

    print(f"[Salons] Deleted salon {salon_id}")


def update_settings(salon: Salon, services) -> Salon:
    """Self-service settings for the owning salon."""
    validate_choice('services', services, SALON_SERVICES)
    db = get_db()

    try:
        salon.services = services
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError('Failed to update settings') from e

    return salon


# =============================================================================
# STYLE LIBRARY
# =============================================================================

def add_hair_style(salon: Salon, name: str, image_url: str) -> HairStyle:
    if not isinstance(name, str) or not name.strip():
        raise MissingField('name')
    if not isinstance(image_url, str) or not image_url:
        raise MissingField('image')

    db = get_db()

    try:
        hair_style = HairStyle(name=name.strip(), image_url=image_url)
        salon.hair_styles.append(hair_style)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError('Failed to save hair style') from e

    print(f"[Salons] Added hair style '{hair_style.name}' to {salon.slug}")
    return hair_style


def remove_hair_style(salon: Salon, hair_style_id: str) -> None:
    """
    Raises:
        StyleNotFound: id not in this salon's library
    """
    if not hair_style_id:
        raise MissingField('id')

    hair_style = salon.get_hair_style(hair_style_id)
    db = get_db()

    try:
        salon.hair_styles.remove(hair_style)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError('Failed to delete hair style') from e
