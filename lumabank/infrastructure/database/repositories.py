"""Data access layer for users, accounts and ledger entries"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from lumabank.infrastructure.database.models import Account, Admin, BankTransaction, User, utcnow


class UserRepository:
    """Repository for customer identities"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: uuid.UUID) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(select(User).where(User.email == email.lower())).scalars().first()

    def get_by_id_number(self, id_number: str) -> Optional[User]:
        return self.db.execute(select(User).where(User.id_number == id_number)).scalars().first()

    def get_by_verification_token(self, token: str, now: datetime) -> Optional[User]:
        return self.db.execute(
            select(User).where(
                User.verification_token == token,
                User.verification_token_expires > now,
            )
        ).scalars().first()

    def get_by_reset_token(self, token: str, now: datetime) -> Optional[User]:
        return self.db.execute(
            select(User).where(
                User.password_reset_token == token,
                User.password_reset_expires > now,
            )
        ).scalars().first()

    def create(self, **fields) -> User:
        user = User(**fields)
        self.db.add(user)
        self.db.flush()  # Get ID without committing
        return user

    def list_by_approval(self, approved: bool, limit: Optional[int] = None) -> List[User]:
        """Pending users oldest first, approved users newest first"""
        order = User.created_at.desc() if approved else User.created_at.asc()
        stmt = (
            select(User)
            .join(Account, Account.user_id == User.id)
            .where(Account.approved == approved)
            .order_by(order)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())


class AccountRepository:
    """
    Repository for accounts and their balances.

    Balance writes only happen through debit/credit, which the balance
    mutator calls inside an atomic unit.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: uuid.UUID) -> Account:
        account = Account(user_id=user_id, balance_cents=0, verified=False, approved=False)
        self.db.add(account)
        self.db.flush()
        return account

    def get_by_user(self, user_id: uuid.UUID, for_update: bool = False) -> Optional[Account]:
        stmt = select(Account).where(Account.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalars().first()

    def get_by_number(self, account_number: str, for_update: bool = False) -> Optional[Account]:
        stmt = select(Account).where(Account.account_number == account_number)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalars().first()

    def lock(self, account_id: uuid.UUID) -> Optional[Account]:
        """Row-lock an account for the rest of the current transaction"""
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalars().first()

    def number_exists(self, account_number: str) -> bool:
        stmt = select(func.count()).select_from(Account).where(Account.account_number == account_number)
        return self.db.execute(stmt).scalar_one() > 0

    def current_balance(self, account_id: uuid.UUID) -> int:
        """Read the committed-or-own-transaction balance straight from the table"""
        stmt = select(Account.balance_cents).where(Account.id == account_id)
        return self.db.execute(stmt).scalar_one()

    def debit(self, account_id: uuid.UUID, amount_cents: int) -> bool:
        """
        Subtract from a balance only if it stays non-negative.

        Returns False when the guard rejected the write, meaning the balance
        changed since it was read.
        """
        result = self.db.execute(
            update(Account)
            .where(Account.id == account_id, Account.balance_cents >= amount_cents)
            .values(balance_cents=Account.balance_cents - amount_cents, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def credit(self, account_id: uuid.UUID, amount_cents: int) -> None:
        self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(balance_cents=Account.balance_cents + amount_cents, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    def stats(self) -> Dict[str, int]:
        row = self.db.execute(
            select(
                func.count(Account.id),
                func.count(Account.id).filter(Account.verified.is_(False)),
                func.count(Account.id).filter(Account.approved.is_(False)),
                func.count(Account.id).filter(Account.approved.is_(True)),
            )
        ).one()
        return {"total": row[0], "unverified": row[1], "pending": row[2], "approved": row[3]}


class AdminRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, admin_id: uuid.UUID) -> Optional[Admin]:
        return self.db.get(Admin, admin_id)

    def get_by_email(self, email: str) -> Optional[Admin]:
        return self.db.execute(select(Admin).where(Admin.email == email.lower())).scalars().first()

    def create(self, name: str, email: str, password_hash: str, role: str = "staff") -> Admin:
        admin = Admin(name=name, email=email.lower(), password_hash=password_hash, role=role)
        self.db.add(admin)
        self.db.flush()
        return admin


class TransactionRepository:
    """Repository for ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields) -> BankTransaction:
        """Persist a ledger row without committing"""
        txn = BankTransaction(**fields)
        self.db.add(txn)
        self.db.flush()
        return txn

    def get(self, transaction_id: uuid.UUID, for_update: bool = False) -> Optional[BankTransaction]:
        stmt = select(BankTransaction).where(BankTransaction.id == transaction_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalars().first()

    def transition(
        self,
        transaction_id: uuid.UUID,
        from_status: str,
        to_status: str,
        only_type: Optional[str] = None,
        **fields,
    ) -> bool:
        """
        Move a transaction between statuses only if it is still in from_status.

        Returns False if another writer got there first.
        """
        conditions = [BankTransaction.id == transaction_id, BankTransaction.status == from_status]
        if only_type is not None:
            conditions.append(BankTransaction.type == only_type)
        result = self.db.execute(
            update(BankTransaction)
            .where(*conditions)
            .values(status=to_status, **fields)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_for_account(self, account_id: uuid.UUID, limit: int = 50) -> List[BankTransaction]:
        """Fetch transactions sent or received by an account, newest first"""
        stmt = (
            select(BankTransaction)
            .where(
                or_(
                    BankTransaction.sender_account_id == account_id,
                    BankTransaction.receiver_account_id == account_id,
                )
            )
            .order_by(BankTransaction.created_at.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_recent(self, limit: int = 100) -> List[BankTransaction]:
        stmt = select(BankTransaction).order_by(BankTransaction.created_at.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def stats(self) -> Dict[str, int]:
        completed = BankTransaction.status == "completed"
        row = self.db.execute(
            select(
                func.count(BankTransaction.id),
                func.count(BankTransaction.id).filter(BankTransaction.status == "pending"),
                func.count(BankTransaction.id).filter(completed),
                func.count(BankTransaction.id).filter(BankTransaction.status == "failed"),
                func.coalesce(func.sum(BankTransaction.amount_cents).filter(completed), 0),
            )
        ).one()
        return {
            "total": row[0],
            "pending": row[1],
            "completed": row[2],
            "failed": row[3],
            "total_completed_cents": row[4],
        }
