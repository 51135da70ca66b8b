"""
Balance mutator - applies one money movement to the account store.

Every balance change in the system goes through BalanceMutator.stage, always
inside an atomic unit, so a movement lands completely (debit, credit and
ledger row) or not at all.

Settlement timing:
- debits land when the movement is created, whatever its status;
- credits land only for movements created as completed. A pending deposit
  is credited later by admin settlement.
"""

import secrets
import time
import uuid
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from lumabank.domain.exceptions import (
    AccountNotApproved,
    AccountNotFound,
    InsufficientFunds,
    ReceiverNotEligible,
    SelfTransferDenied,
)
from lumabank.domain.models import MovementDraft, TransactionStatus
from lumabank.infrastructure.database.models import Account, BankTransaction, utcnow
from lumabank.infrastructure.database.repositories import AccountRepository, TransactionRepository
from lumabank.infrastructure.database.session import atomic
from lumabank.utils.money import from_cents


def generate_transaction_ref(prefix: str) -> str:
    """e.g. TRF-1760790000123-9F2A41C7"""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


class BalanceMutator:
    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountRepository(db)
        self.transactions = TransactionRepository(db)

    def apply(self, draft: MovementDraft) -> BankTransaction:
        """Apply a movement in its own atomic unit and commit it"""
        with atomic(self.db):
            return self.stage(draft)

    def stage(self, draft: MovementDraft) -> BankTransaction:
        """
        Apply a movement inside the caller's atomic unit.

        All precondition checks run against rows locked in this unit, never
        against values read before it started.

        Raises:
            AccountNotFound: debit or credit account does not exist
            AccountNotApproved: the debit account cannot transact
            ReceiverNotEligible: credit account exists but is not approved
            SelfTransferDenied: debit and credit resolve to the same account
            InsufficientFunds: debit would make the balance negative
        """
        sender, receiver = self._lock_accounts(draft)

        if sender is not None and receiver is not None and sender.id == receiver.id:
            raise SelfTransferDenied()

        if sender is not None and not sender.approved:
            raise AccountNotApproved("Account not approved for transactions")
        if receiver is not None and not receiver.approved:
            raise ReceiverNotEligible()

        if sender is not None:
            self._debit(sender, draft.amount_cents)
        if receiver is not None and draft.status == TransactionStatus.COMPLETED:
            self.accounts.credit(receiver.id, draft.amount_cents)

        now = utcnow()
        return self.transactions.create(
            transaction_ref=generate_transaction_ref(draft.ref_prefix),
            sender_account_id=sender.id if sender else None,
            receiver_account_id=receiver.id if receiver else None,
            sender_account=sender.account_number if sender else None,
            receiver_account=draft.receiver_account or (receiver.account_number if receiver else None),
            amount_cents=draft.amount_cents,
            type=draft.type.value,
            status=draft.status.value,
            narration=draft.narration or None,
            created_at=now,
            completed_at=now if draft.status == TransactionStatus.COMPLETED else None,
        )

    def _lock_accounts(self, draft: MovementDraft) -> Tuple[Optional[Account], Optional[Account]]:
        """Resolve both parties, then lock them in a fixed order to avoid deadlocks"""
        sender_id = receiver_id = None

        if draft.debit_user_id is not None:
            sender_ref = self.accounts.get_by_user(draft.debit_user_id)
            if sender_ref is None:
                raise AccountNotFound("Sender account not found")
            sender_id = sender_ref.id

        if draft.credit_user_id is not None:
            receiver_ref = self.accounts.get_by_user(draft.credit_user_id)
        elif draft.credit_account_number is not None:
            receiver_ref = self.accounts.get_by_number(draft.credit_account_number)
        else:
            receiver_ref = None
        if receiver_ref is None and (draft.credit_user_id or draft.credit_account_number):
            raise AccountNotFound("Receiver account not found")
        if receiver_ref is not None:
            receiver_id = receiver_ref.id

        locked: Dict[uuid.UUID, Account] = {}
        ordered: List[uuid.UUID] = sorted({i for i in (sender_id, receiver_id) if i is not None}, key=str)
        for account_id in ordered:
            account = self.accounts.lock(account_id)
            if account is None:
                raise AccountNotFound()
            locked[account_id] = account

        return (
            locked.get(sender_id) if sender_id else None,
            locked.get(receiver_id) if receiver_id else None,
        )

    def _debit(self, account: Account, amount_cents: int) -> None:
        if account.balance_cents < amount_cents:
            raise InsufficientFunds(available=from_cents(account.balance_cents), requested=from_cents(amount_cents))
        if not self.accounts.debit(account.id, amount_cents):
            # Balance moved between the locked read and the write
            available = self.accounts.current_balance(account.id)
            raise InsufficientFunds(available=from_cents(available), requested=from_cents(amount_cents))
