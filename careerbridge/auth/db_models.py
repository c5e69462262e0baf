"""
SQLAlchemy ORM models for identity tables.

These are the database-layer models that map to actual tables.
Separate from careerbridge/auth/models.py (dataclasses) which are domain models.
"""
from uuid import uuid4

from sqlalchemy import Column, Index, String, TIMESTAMP, UniqueConstraint, Uuid
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class AccountORM(Base):
    """Account table - durable identity record."""
    __tablename__ = 'accounts'

    account_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    # Always stored normalized (stripped, lower-cased)
    email = Column(String(320), nullable=False)
    full_name = Column(String(256), nullable=False)
    password_hash = Column(String(512), nullable=True)
    avatar_url = Column(String(2048), nullable=True)
    linked_provider = Column(String(32), nullable=True)
    provider_external_id = Column(String(256), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint('email', name='accounts_email_unique'),
        UniqueConstraint(
            'linked_provider', 'provider_external_id',
            name='accounts_provider_identity_unique',
        ),
        Index('idx_accounts_provider', 'linked_provider', 'provider_external_id'),
    )
