"""Transfer orchestration: validates requests and hands movements to the balance mutator"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from lumabank.config import settings
from lumabank.domain.exceptions import AccountNotFound, ReceiverNotEligible, ValidationError
from lumabank.domain.models import (
    DepositCommand,
    MovementDraft,
    Principal,
    TransactionStatus,
    TransactionType,
    TransferCommand,
)
from lumabank.domain.rules import (
    DEPOSIT_DESCRIPTION_MAX_LENGTH,
    clean_account_number,
    ensure_not_self_transfer,
    validate_amount,
    validate_narration,
)
from lumabank.infrastructure.database.models import BankTransaction
from lumabank.infrastructure.database.repositories import AccountRepository, TransactionRepository
from lumabank.infrastructure.settlement import SettlementScheduler
from lumabank.services.balance import BalanceMutator
from lumabank.utils.money import from_cents

DEFAULT_DEPOSIT_DESCRIPTION = "Bank Deposit"


@dataclass
class MovementResult:
    transaction: BankTransaction
    message: str
    new_balance: Optional[Decimal] = None  # deposits only


class TransferService:
    def __init__(self, db: Session, scheduler: Optional[SettlementScheduler] = None):
        self.db = db
        self.scheduler = scheduler
        self.accounts = AccountRepository(db)
        self.transactions = TransactionRepository(db)
        self.mutator = BalanceMutator(db)

    def transfer(self, principal: Principal, command: TransferCommand) -> MovementResult:
        """
        Move money out of the caller's account.

        Flow:
        1. Validate amount, receiver account number and narration
        2. Internal: receiver must exist and be approved, then debit and
           credit in one unit; the transfer completes immediately
        3. External: debit only, record as pending and hand the id to the
           settlement scheduler once committed
        """
        amount_cents = validate_amount(command.amount, settings.max_transfer_amount)
        receiver_account = clean_account_number(command.receiver_account)
        narration = validate_narration(command.narration)
        ensure_not_self_transfer(principal.account_number, receiver_account)

        if command.type == TransactionType.INTERNAL:
            receiver = self.accounts.get_by_number(receiver_account)
            if receiver is None:
                raise AccountNotFound("Receiver account not found")
            if not receiver.approved:
                raise ReceiverNotEligible()

            txn = self.mutator.apply(
                MovementDraft(
                    type=TransactionType.INTERNAL,
                    status=TransactionStatus.COMPLETED,
                    amount_cents=amount_cents,
                    ref_prefix="TRF",
                    debit_user_id=principal.subject_id,
                    credit_account_number=receiver_account,
                    receiver_account=receiver_account,
                    narration=narration,
                )
            )
            return MovementResult(txn, "Transfer completed successfully.")

        if command.type == TransactionType.EXTERNAL:
            txn = self.mutator.apply(
                MovementDraft(
                    type=TransactionType.EXTERNAL,
                    status=TransactionStatus.PENDING,
                    amount_cents=amount_cents,
                    ref_prefix="EXT",
                    debit_user_id=principal.subject_id,
                    receiver_account=receiver_account,
                    narration=narration,
                )
            )
            # Only committed transfers reach the scheduler
            if self.scheduler is not None:
                self.scheduler.schedule(txn.id)
            return MovementResult(txn, "Transfer initiated successfully. Status: Pending external processing.")

        raise ValidationError("Transfer type must be internal or external")

    def deposit(self, principal: Principal, command: DepositCommand) -> MovementResult:
        """
        Credit the caller's own account.

        When deposits require approval the movement is recorded as pending
        and the balance is untouched until an admin approves it.
        """
        amount_cents = validate_amount(command.amount, settings.max_deposit_amount)
        description = validate_narration(command.description, DEPOSIT_DESCRIPTION_MAX_LENGTH)
        pending = settings.deposit_requires_approval

        txn = self.mutator.apply(
            MovementDraft(
                type=TransactionType.DEPOSIT,
                status=TransactionStatus.PENDING if pending else TransactionStatus.COMPLETED,
                amount_cents=amount_cents,
                ref_prefix="DEP",
                credit_user_id=principal.subject_id,
                narration=description or DEFAULT_DEPOSIT_DESCRIPTION,
            )
        )

        account = self.accounts.get_by_user(principal.subject_id)
        new_balance = from_cents(account.balance_cents)
        if pending:
            message = "Deposit submitted successfully. Status: Pending admin approval."
        else:
            message = f"Successfully deposited {from_cents(amount_cents):,.2f}"
        return MovementResult(txn, message, new_balance=new_balance)

    def history(self, principal: Principal, limit: int = 50) -> List[BankTransaction]:
        """Movements where the caller's account is sender or receiver, newest first"""
        account = self.accounts.get_by_user(principal.subject_id)
        if account is None:
            raise AccountNotFound()
        return self.transactions.list_for_account(account.id, limit=limit)
