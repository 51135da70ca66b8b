"""/v1/admin/* - user approval, settlement of pending transactions and admin passwords"""

import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session

from lumabank.api.dependencies import get_email_client, get_request_id, require_admin
from lumabank.api.v1.schemas import (
    AdminTransactionsResponse,
    AdminUsersResponse,
    ApproveUserResponse,
    ChangePasswordRequest,
    MessageResponse,
    SettlementRequest,
    SettlementResponse,
    TransactionStats,
    UserStats,
)
from lumabank.api.v1.serializers import serialize_admin_user, serialize_transaction
from lumabank.domain.models import Principal, SettlementAction, SettlementCommand
from lumabank.infrastructure.clients.email import EmailClient
from lumabank.infrastructure.database.session import get_db
from lumabank.services.accounts import AccountService
from lumabank.services.notifications import send_approval_email
from lumabank.services.settlement import SettlementService
from lumabank.utils.money import from_cents

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users", response_model=AdminUsersResponse)
def list_users(principal: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    """
    Returns:
        Pending users oldest first, the 50 newest approved users and account counts
    """
    pending, approved, stats = AccountService(db).list_users()
    return AdminUsersResponse(
        pending_users=[serialize_admin_user(u) for u in pending],
        approved_users=[serialize_admin_user(u) for u in approved],
        stats=UserStats(**stats),
    )


@router.post("/users/{user_id}/approve", response_model=ApproveUserResponse)
def approve_user(
    user_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    email_client: EmailClient = Depends(get_email_client),
):
    """
    Approve a pending customer.

    Flow:
    1. Assign a unique account number and mark the account verified and approved
    2. Credit the welcome bonus in the same atomic unit
    3. Email the customer after commit
    """
    user, account = AccountService(db).approve_user(user_id)
    background_tasks.add_task(send_approval_email, email_client, user.email, user.name, account.account_number)
    logger.info(
        "User approved by admin",
        extra={"request_id": get_request_id(request), "user_id": str(user_id), "admin_id": str(principal.subject_id)},
    )
    return ApproveUserResponse(message="User approved successfully", user=serialize_admin_user(user))


@router.get("/transactions", response_model=AdminTransactionsResponse)
def list_transactions(
    limit: int = Query(100, ge=1, le=500),
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = SettlementService(db)
    transactions = service.list_recent(limit=limit)
    stats = service.stats()
    return AdminTransactionsResponse(
        transactions=[serialize_transaction(t) for t in transactions],
        stats=TransactionStats(
            total=stats["total"],
            pending=stats["pending"],
            completed=stats["completed"],
            failed=stats["failed"],
            total_completed_amount=from_cents(stats["total_completed_cents"]),
        ),
    )


@router.post("/transactions/settle", response_model=SettlementResponse)
def settle_transaction(
    request_body: SettlementRequest,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Approve or reject a pending transaction.

    Approving a deposit credits the receiver; rejecting a transfer refunds
    the sender. Transactions that are no longer pending are left alone.
    """
    txn = SettlementService(db).settle(
        principal.subject_id,
        SettlementCommand(
            transaction_id=request_body.transaction_id,
            action=request_body.action,
            admin_comment=request_body.admin_comment,
        ),
    )
    verb = "approved" if request_body.action == SettlementAction.APPROVE else "rejected"
    return SettlementResponse(message=f"Transaction {verb} successfully", transaction=serialize_transaction(txn))


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    request_body: ChangePasswordRequest,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    AccountService(db).change_admin_password(
        principal.subject_id,
        request_body.current_password,
        request_body.new_password,
        request_body.confirm_password,
    )
    return MessageResponse(message="Password changed successfully")
