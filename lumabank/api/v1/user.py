"""/v1/user/* - customer profile, history, transfers and deposits"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from lumabank.api.dependencies import (
    get_request_id,
    get_settlement_scheduler,
    require_user,
    user_rate_limit,
)
from lumabank.api.v1.schemas import (
    ChangePasswordRequest,
    DepositRequest,
    DepositResponse,
    MessageResponse,
    ProfileSchema,
    TransactionListResponse,
    TransferRequest,
    TransferResponse,
)
from lumabank.api.v1.serializers import serialize_profile, serialize_transaction
from lumabank.domain.exceptions import DomainException, TransactionAborted
from lumabank.domain.models import DepositCommand, Principal, TransactionType, TransferCommand
from lumabank.infrastructure.database.session import get_db
from lumabank.infrastructure.observability.logging import log_transfer
from lumabank.infrastructure.observability.metrics import record_transfer
from lumabank.infrastructure.settlement import SettlementScheduler
from lumabank.services.accounts import AccountService
from lumabank.services.transfers import TransferService
from lumabank.utils.money import to_cents

logger = logging.getLogger(__name__)

router = APIRouter()


def _failure_outcome(exc: DomainException) -> str:
    return "aborted" if isinstance(exc, TransactionAborted) else "rejected"


def _safe_cents(amount: Decimal) -> int:
    return to_cents(amount) if amount.is_finite() else 0


@router.get("/profile", response_model=ProfileSchema)
def get_profile(principal: Principal = Depends(require_user), db: Session = Depends(get_db)):
    user, account = AccountService(db).profile(principal.subject_id)
    return serialize_profile(user, account)


@router.get("/transactions", response_model=TransactionListResponse)
def get_transactions(
    limit: int = Query(50, ge=1, le=200, description="Maximum number of transactions"),
    principal: Principal = Depends(require_user),
    db: Session = Depends(get_db),
):
    """
    Retrieve the caller's transactions.

    Returns:
        Movements where the caller is sender or receiver, newest first
    """
    transactions = TransferService(db).history(principal, limit=limit)
    return TransactionListResponse(transactions=[serialize_transaction(t) for t in transactions])


@router.post("/transfer", response_model=TransferResponse, dependencies=[Depends(user_rate_limit("transfer"))])
def create_transfer(
    request_body: TransferRequest,
    request: Request,
    principal: Principal = Depends(require_user),
    db: Session = Depends(get_db),
    scheduler: SettlementScheduler = Depends(get_settlement_scheduler),
):
    """
    Send money from the caller's account.

    Flow:
    1. Validate the amount, receiver and narration
    2. Internal: debit sender and credit receiver atomically; completed
    3. External: debit sender atomically; pending until settled
    4. Record metrics and a structured log line for the outcome
    """
    request_id = get_request_id(request)
    transaction_type = request_body.type.value
    command = TransferCommand(
        receiver_account=request_body.receiver_account,
        amount=request_body.amount,
        type=request_body.type,
        narration=request_body.narration or "",
    )

    try:
        result = TransferService(db, scheduler).transfer(principal, command)
    except DomainException as e:
        record_transfer(transaction_type, _failure_outcome(e))
        log_transfer(
            request_id, str(principal.subject_id), transaction_type,
            _safe_cents(request_body.amount), _failure_outcome(e), reason=type(e).__name__,
        )
        raise

    txn = result.transaction
    record_transfer(transaction_type, txn.status)
    log_transfer(
        request_id, str(principal.subject_id), transaction_type, txn.amount_cents, txn.status,
        transaction_id=str(txn.id),
    )
    return TransferResponse(message=result.message, transaction=serialize_transaction(txn))


@router.post("/deposit", response_model=DepositResponse, dependencies=[Depends(user_rate_limit("deposit"))])
def create_deposit(
    request_body: DepositRequest,
    request: Request,
    principal: Principal = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Credit the caller's own account"""
    request_id = get_request_id(request)
    deposit_type = TransactionType.DEPOSIT.value
    command = DepositCommand(amount=request_body.amount, description=request_body.description or "")

    try:
        result = TransferService(db).deposit(principal, command)
    except DomainException as e:
        record_transfer(deposit_type, _failure_outcome(e))
        log_transfer(
            request_id, str(principal.subject_id), deposit_type,
            _safe_cents(request_body.amount), _failure_outcome(e), reason=type(e).__name__,
        )
        raise

    txn = result.transaction
    record_transfer(deposit_type, txn.status)
    log_transfer(
        request_id, str(principal.subject_id), deposit_type, txn.amount_cents, txn.status,
        transaction_id=str(txn.id),
    )
    return DepositResponse(
        message=result.message,
        new_balance=result.new_balance,
        transaction=serialize_transaction(txn),
    )


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    request_body: ChangePasswordRequest,
    principal: Principal = Depends(require_user),
    db: Session = Depends(get_db),
):
    AccountService(db).change_password(
        principal.subject_id,
        request_body.current_password,
        request_body.new_password,
        request_body.confirm_password,
    )
    return MessageResponse(message="Password changed successfully")
