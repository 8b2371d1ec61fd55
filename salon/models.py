"""
salon/models.py

SQLAlchemy models for StylePreview.

Tables:
    - users: Accounts with email/password auth (admin or salon operator)
    - salons: Tenants, each with an integer credit balance
    - hair_styles: A salon's style library (reference photos)
    - images: Client photos uploaded by a salon
    - generations: Append-only history of AI previews
    - credit_ledger: Every change to a salon's balance

Design principles:
    1. String UUID ids: Same schema on PostgreSQL and SQLite
    2. Balance lives on the salon row so it can be decremented atomically
    3. Audit trail: Ledger records every credit change with balance_after
    4. Generations are never updated after insert

Version History:
    2025-11-04: Initial implementation
    2025-11-12: Added credit_ledger and non-negative balance constraint
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text,
    ForeignKey, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship

import bcrypt

from salon.config import SalonStatus, UserRole
from salon.errors import StyleNotFound


Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# USER MODEL
# =============================================================================

class User(Base):
    """
    User account with email/password authentication.

    Salon operators own exactly one salon; admins own none.
    """
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=new_id)

    # Authentication
    email = Column(String(500), unique=True, nullable=False, index=True)
    password_hash = Column(String(200), nullable=False)

    # Profile
    name = Column(String(200))
    image = Column(Text)

    # Access
    role = Column(String(20), nullable=False, default=UserRole.SALON.value)
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    last_login_at = Column(DateTime(timezone=True))

    # Relationships
    salon = relationship('Salon', back_populates='owner', uselist=False)

    # Password hashing
    def set_password(self, password: str):
        """Hash and store password."""
        salt = bcrypt.gensalt()
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def check_password(self, password: str) -> bool:
        """Verify password against hash."""
        return bcrypt.checkpw(
            password.encode('utf-8'),
            self.password_hash.encode('utf-8')
        )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def salon_id(self) -> Optional[str]:
        if self.role != UserRole.SALON.value or self.salon is None:
            return None
        return self.salon.id

    @property
    def salon_slug(self) -> Optional[str]:
        if self.role != UserRole.SALON.value or self.salon is None:
            return None
        return self.salon.slug

    # Flask-Login integration
    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False

    def get_id(self):
        return str(self.id)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'image': self.image,
            'role': self.role,
            'salonId': self.salon_id,
            'salonSlug': self.salon_slug,
        }

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'


# =============================================================================
# SALON MODEL
# =============================================================================

class Salon(Base):
    """
    Tenant record.

    credits is decremented in place by salon.ledger with a conditional
    UPDATE, so two concurrent requests can never both spend the last credit.
    """
    __tablename__ = 'salons'

    id = Column(String(36), primary_key=True, default=new_id)

    name = Column(String(200), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)

    status = Column(String(20), nullable=False, default=SalonStatus.ACTIVE.value)
    type = Column(String(20), nullable=False, default='hairsalon')
    services = Column(String(20), nullable=False, default='both')

    credits = Column(Integer, nullable=False, default=0)

    owner_id = Column(String(36), ForeignKey('users.id', ondelete='SET NULL'), index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    owner = relationship('User', back_populates='salon')
    hair_styles = relationship(
        'HairStyle',
        back_populates='salon',
        cascade='all, delete-orphan',
        order_by='HairStyle.uploaded_at',
    )
    images = relationship('Image', back_populates='salon', cascade='all, delete-orphan')
    generations = relationship('Generation', back_populates='salon', cascade='all, delete-orphan')
    credit_entries = relationship('CreditLedger', back_populates='salon', cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint('credits >= 0', name='ck_salons_credits_non_negative'),
    )

    @property
    def is_active(self) -> bool:
        return self.status == SalonStatus.ACTIVE.value

    def get_hair_style(self, hair_style_id: str) -> 'HairStyle':
        """
        Look up an entry in this salon's style library.

        Raises:
            StyleNotFound: if the id is not in the library
        """
        for hair_style in self.hair_styles:
            if hair_style.id == hair_style_id:
                return hair_style
        raise StyleNotFound(hair_style_id)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'status': self.status,
            'type': self.type,
            'services': self.services,
            'credits': self.credits,
            'hairStyles': [hs.to_dict() for hs in self.hair_styles],
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f'<Salon {self.slug} credits={self.credits}>'


# =============================================================================
# STYLE LIBRARY MODEL
# =============================================================================

class HairStyle(Base):
    """Reference hairstyle photo in a salon's library."""
    __tablename__ = 'hair_styles'

    id = Column(String(36), primary_key=True, default=new_id)
    salon_id = Column(String(36), ForeignKey('salons.id', ondelete='CASCADE'), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    image_url = Column(Text, nullable=False)  # Data URL or hosted URL

    uploaded_at = Column(DateTime(timezone=True), default=utcnow)

    salon = relationship('Salon', back_populates='hair_styles')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'imageUrl': self.image_url,
            'uploadedAt': isoformat(self.uploaded_at),
        }

    def __repr__(self):
        return f'<HairStyle {self.name}>'


# =============================================================================
# IMAGE MODEL
# =============================================================================

class Image(Base):
    """Client photo uploaded by a salon. Immutable once stored."""
    __tablename__ = 'images'

    id = Column(String(36), primary_key=True, default=new_id)
    salon_id = Column(String(36), ForeignKey('salons.id', ondelete='CASCADE'), nullable=False, index=True)

    url = Column(Text, nullable=False)  # Storage reference at the image host

    created_at = Column(DateTime(timezone=True), default=utcnow)

    salon = relationship('Salon', back_populates='images')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'salonId': self.salon_id,
            'filePath': self.url,
            'createdAt': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Image {self.id} salon={self.salon_id}>'


# =============================================================================
# GENERATION MODEL
# =============================================================================

class Generation(Base):
    """
    One successful AI preview.

    Written exactly once per successful orchestration, never updated.
    credit_cost is what was actually charged.
    """
    __tablename__ = 'generations'

    id = Column(String(36), primary_key=True, default=new_id)
    salon_id = Column(String(36), ForeignKey('salons.id', ondelete='CASCADE'), nullable=False, index=True)

    # Inputs
    input_image_id = Column(String(36), ForeignKey('images.id', ondelete='SET NULL'))
    prompt = Column(Text)
    hair_style_id = Column(String(36))
    generation_type = Column(String(30), nullable=False)
    variations = Column(Integer, nullable=False, default=1)

    # Outputs
    output_image_path = Column(Text, nullable=False)
    processing_time = Column(Integer, nullable=False, default=0)  # ms
    credit_cost = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    salon = relationship('Salon', back_populates='generations')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'salonId': self.salon_id,
            'inputImageId': self.input_image_id,
            'outputImagePath': self.output_image_path,
            'prompt': self.prompt,
            'hairStyleId': self.hair_style_id,
            'generationType': self.generation_type,
            'variations': self.variations,
            'processingTime': self.processing_time,
            'creditCost': self.credit_cost,
            'createdAt': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Generation {self.id} {self.generation_type} cost={self.credit_cost}>'


Index('idx_generations_salon_created', Generation.salon_id, Generation.created_at)


# =============================================================================
# CREDIT LEDGER MODEL
# =============================================================================

class CreditReason:
    """Credit transaction reason constants."""
    SIGNUP_BONUS = 'signup_bonus'
    USAGE = 'usage'
    REFUND = 'refund'
    ADMIN_GRANT = 'admin_grant'
    ADMIN_ADJUST = 'admin_adjust'


class CreditLedger(Base):
    """
    Credit transaction ledger.

    The balance itself lives on salons.credits; this table is the audit
    trail for it:
        +50 signup_bonus
        -1  usage (generation)
        +1  refund (generation failed after charge)
        +20 admin_grant
    """
    __tablename__ = 'credit_ledger'

    id = Column(String(36), primary_key=True, default=new_id)

    # Who
    salon_id = Column(String(36), ForeignKey('salons.id', ondelete='CASCADE'), nullable=False, index=True)

    # What
    delta = Column(Integer, nullable=False)  # Positive = grant, negative = spend
    reason = Column(String(50), nullable=False)
    balance_after = Column(Integer)

    # Generation this entry paid for or refunded (usage/refund)
    generation_id = Column(String(36), index=True)
    notes = Column(Text)

    # Admin who made this entry
    created_by = Column(String(36), ForeignKey('users.id', ondelete='SET NULL'))

    created_at = Column(DateTime(timezone=True), default=utcnow)

    salon = relationship('Salon', back_populates='credit_entries')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'delta': self.delta,
            'reason': self.reason,
            'balanceAfter': self.balance_after,
            'generationId': self.generation_id,
            'notes': self.notes,
            'createdAt': isoformat(self.created_at),
        }

    def __repr__(self):
        sign = '+' if self.delta > 0 else ''
        return f'<CreditLedger salon={self.salon_id} {sign}{self.delta} ({self.reason})>'


Index('idx_credit_ledger_salon_created', CreditLedger.salon_id, CreditLedger.created_at)
