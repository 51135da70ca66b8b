"""ORM row to response schema conversion"""

from lumabank.api.v1.schemas import AdminUserSchema, ProfileSchema, TransactionSchema
from lumabank.infrastructure.database.models import Account, BankTransaction, User
from lumabank.utils.money import from_cents


def serialize_transaction(t: BankTransaction) -> TransactionSchema:
    return TransactionSchema(
        id=t.id,
        transaction_ref=t.transaction_ref,
        sender_account=t.sender_account,
        receiver_account=t.receiver_account,
        amount=from_cents(t.amount_cents),
        type=t.type,
        status=t.status,
        narration=t.narration,
        admin_comment=t.admin_comment,
        created_at=t.created_at,
        completed_at=t.completed_at,
        processed_at=t.processed_at,
    )


def serialize_profile(u: User, a: Account) -> ProfileSchema:
    return ProfileSchema(
        id=u.id,
        name=u.name,
        email=u.email,
        phone=u.phone,
        address=u.address or {},
        id_number=u.id_number,
        account_number=a.account_number,
        balance=from_cents(a.balance_cents),
        verified=a.verified,
        approved=a.approved,
        created_at=u.created_at,
    )


def serialize_admin_user(u: User) -> AdminUserSchema:
    a = u.account
    return AdminUserSchema(
        id=u.id,
        name=u.name,
        email=u.email,
        phone=u.phone,
        id_number=u.id_number,
        account_number=a.account_number if a else None,
        balance=from_cents(a.balance_cents) if a else from_cents(0),
        verified=bool(a and a.verified),
        approved=bool(a and a.approved),
        created_at=u.created_at,
    )
