"""Settlement of pending transactions by admins and by the external-rail timer"""

import logging
import uuid
from typing import Dict, List

from sqlalchemy.orm import Session

from lumabank.domain.exceptions import AccountNotFound, AlreadyProcessed, TransactionNotFound
from lumabank.domain.models import SettlementAction, SettlementCommand, TransactionStatus, TransactionType
from lumabank.domain.rules import validate_narration
from lumabank.infrastructure.database.models import BankTransaction, utcnow
from lumabank.infrastructure.database.repositories import AccountRepository, TransactionRepository
from lumabank.infrastructure.database.session import SessionLocal, atomic
from lumabank.infrastructure.observability.logging import log_settlement
from lumabank.infrastructure.observability.metrics import record_settlement

logger = logging.getLogger(__name__)

DEFAULT_COMMENTS = {
    SettlementAction.APPROVE: "Approved by admin",
    SettlementAction.REJECT: "Rejected by admin",
}


class SettlementService:
    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountRepository(db)
        self.transactions = TransactionRepository(db)

    def settle(self, admin_id: uuid.UUID, command: SettlementCommand) -> BankTransaction:
        """
        Move a pending transaction to completed or failed.

        Approve: a pending deposit credits its receiver; a pending transfer
        was already debited, so only the status changes.
        Reject: a pending transfer refunds its sender; a pending deposit
        never touched a balance.

        Raises:
            TransactionNotFound: unknown id
            AlreadyProcessed: transaction is not pending
        """
        comment = validate_narration(command.admin_comment) or DEFAULT_COMMENTS[command.action]

        with atomic(self.db):
            txn = self.transactions.get(command.transaction_id, for_update=True)
            if txn is None:
                raise TransactionNotFound()
            if txn.status != TransactionStatus.PENDING.value:
                raise AlreadyProcessed(txn.status)

            now = utcnow()
            fields = {"admin_comment": comment, "processed_by": admin_id, "processed_at": now}

            if command.action == SettlementAction.APPROVE:
                if txn.type == TransactionType.DEPOSIT.value:
                    self._credit(txn.receiver_account_id, txn.amount_cents)
                to_status = TransactionStatus.COMPLETED
                fields["completed_at"] = now
            else:
                if txn.type != TransactionType.DEPOSIT.value:
                    self._credit(txn.sender_account_id, txn.amount_cents)
                to_status = TransactionStatus.FAILED

            if not self.transactions.transition(txn.id, TransactionStatus.PENDING.value, to_status.value, **fields):
                # Lost a race with the timer or another admin; roll back the balance change
                current = self.transactions.get(txn.id, for_update=True)
                raise AlreadyProcessed(current.status if current else "processed")

        record_settlement(command.action.value, "admin")
        log_settlement(str(command.transaction_id), command.action.value, "admin", admin_id=str(admin_id))
        return self.transactions.get(command.transaction_id)

    def list_recent(self, limit: int = 100) -> List[BankTransaction]:
        return self.transactions.list_recent(limit=limit)

    def stats(self) -> Dict[str, int]:
        return self.transactions.stats()

    def _credit(self, account_id: uuid.UUID, amount_cents: int) -> None:
        if account_id is None or self.accounts.lock(account_id) is None:
            raise AccountNotFound()
        self.accounts.credit(account_id, amount_cents)


def auto_complete_external_transfer(db: Session, transaction_id: uuid.UUID) -> bool:
    """
    Complete an external transfer if it is still pending.

    The sender was debited when the transfer was created, so completion
    touches no balance. Returns False when the transfer was already settled
    (for instance rejected by an admin first).
    """
    with atomic(db):
        changed = TransactionRepository(db).transition(
            transaction_id,
            TransactionStatus.PENDING.value,
            TransactionStatus.COMPLETED.value,
            only_type=TransactionType.EXTERNAL.value,
            completed_at=utcnow(),
        )

    if changed:
        record_settlement("auto", "timer")
        log_settlement(str(transaction_id), "auto", "timer")
    else:
        logger.info("External transfer already settled", extra={"transaction_id": str(transaction_id)})
    return changed


def settle_external_transfer(transaction_id: uuid.UUID) -> bool:
    """Timer entry point: runs outside any request, so it opens its own session"""
    db = SessionLocal()
    try:
        return auto_complete_external_transfer(db, transaction_id)
    finally:
        db.close()
