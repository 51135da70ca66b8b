"""SQLAlchemy ORM models for users, accounts, admins and the transaction ledger"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Registered customer identity"""

    __tablename__ = "bank_user"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    phone = Column(String(32), nullable=False)
    address = Column(JSON, nullable=False)
    id_number = Column(String(64), nullable=False, unique=True)
    verification_token = Column(String(64), nullable=True, index=True)
    verification_token_expires = Column(DateTime(timezone=True), nullable=True)
    password_reset_token = Column(String(64), nullable=True, index=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    account = relationship("Account", back_populates="user", uselist=False)


class Account(Base):
    """Bank account owned by exactly one user; balance is held in cents"""

    __tablename__ = "account"
    __table_args__ = (CheckConstraint("balance_cents >= 0", name="ck_account_balance_non_negative"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("bank_user.id"), nullable=False, unique=True)
    account_number = Column(String(10), nullable=True, unique=True, index=True)
    balance_cents = Column(BigInteger, nullable=False, default=0)
    verified = Column(Boolean, nullable=False, default=False)
    approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="account")


class Admin(Base):
    """Back-office operator"""

    __tablename__ = "bank_admin"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(16), nullable=False, default="staff")  # superadmin | staff
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class BankTransaction(Base):
    """Ledger row for one transfer or deposit"""

    __tablename__ = "bank_transaction"
    __table_args__ = (CheckConstraint("amount_cents > 0", name="ck_transaction_amount_positive"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transaction_ref = Column(String(40), nullable=False, unique=True)
    sender_account_id = Column(Uuid(as_uuid=True), ForeignKey("account.id"), nullable=True, index=True)
    receiver_account_id = Column(Uuid(as_uuid=True), ForeignKey("account.id"), nullable=True, index=True)
    sender_account = Column(String(10), nullable=True)
    receiver_account = Column(String(10), nullable=True, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    type = Column(String(16), nullable=False)  # internal | external | deposit
    status = Column(String(16), nullable=False, default="pending", index=True)
    narration = Column(String(500), nullable=True)
    admin_comment = Column(String(500), nullable=True)
    processed_by = Column(Uuid(as_uuid=True), ForeignKey("bank_admin.id"), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
