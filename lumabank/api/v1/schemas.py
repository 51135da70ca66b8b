"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from lumabank.domain.models import SettlementAction, TransactionType


class RequestModel(BaseModel):
    """Request bodies reject unknown fields"""

    model_config = ConfigDict(extra="forbid")


# Auth


class AddressSchema(RequestModel):
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)


class RegisterRequest(RequestModel):
    """Request body for POST /v1/auth/register"""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    phone: str = Field(..., min_length=10, max_length=32)
    address: AddressSchema
    id_number: str = Field(..., min_length=1, max_length=64, description="National ID or passport number")


class VerifyEmailRequest(RequestModel):
    token: str = Field(..., min_length=1)


class LoginRequest(RequestModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(RequestModel):
    email: EmailStr


class ResetPasswordRequest(RequestModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., min_length=1)


class ChangePasswordRequest(RequestModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    message: str


class UserSummary(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    verified: bool
    approved: bool


class RegisterResponse(BaseModel):
    """Response for POST /v1/auth/register"""

    message: str
    user: UserSummary


class ProfileSchema(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    phone: str
    address: Dict[str, str]
    id_number: str
    account_number: Optional[str] = None
    balance: Decimal
    verified: bool
    approved: bool
    role: str = "user"
    created_at: datetime


class LoginResponse(BaseModel):
    message: str
    token: str
    user: ProfileSchema


class AdminSchema(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str


class AdminLoginResponse(BaseModel):
    message: str
    token: str
    admin: AdminSchema


# Movements


class TransferRequest(RequestModel):
    """Request body for POST /v1/user/transfer"""

    receiver_account: str = Field(..., min_length=1, max_length=32, description="10-digit account number")
    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Amount in currency units")
    type: TransactionType = TransactionType.INTERNAL
    narration: Optional[str] = Field(None, max_length=500)


class DepositRequest(RequestModel):
    """Request body for POST /v1/user/deposit"""

    amount: Decimal = Field(..., gt=0, decimal_places=2)
    description: Optional[str] = Field(None, max_length=200)


class TransactionSchema(BaseModel):
    """Snapshot of one ledger row"""

    id: uuid.UUID
    transaction_ref: str
    sender_account: Optional[str] = None
    receiver_account: Optional[str] = None
    amount: Decimal
    type: str
    status: str
    narration: Optional[str] = None
    admin_comment: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


class TransferResponse(BaseModel):
    """Response for POST /v1/user/transfer"""

    message: str
    transaction: TransactionSchema


class DepositResponse(BaseModel):
    """Response for POST /v1/user/deposit"""

    success: bool = True
    message: str
    new_balance: Decimal
    transaction: TransactionSchema


class TransactionListResponse(BaseModel):
    transactions: List[TransactionSchema]


# Admin


class AdminUserSchema(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    phone: str
    id_number: str
    account_number: Optional[str] = None
    balance: Decimal
    verified: bool
    approved: bool
    created_at: datetime


class UserStats(BaseModel):
    total: int
    unverified: int
    pending: int
    approved: int


class AdminUsersResponse(BaseModel):
    """Response for GET /v1/admin/users"""

    pending_users: List[AdminUserSchema]
    approved_users: List[AdminUserSchema]
    stats: UserStats


class ApproveUserResponse(BaseModel):
    message: str
    user: AdminUserSchema


class TransactionStats(BaseModel):
    total: int
    pending: int
    completed: int
    failed: int
    total_completed_amount: Decimal


class AdminTransactionsResponse(BaseModel):
    """Response for GET /v1/admin/transactions"""

    transactions: List[TransactionSchema]
    stats: TransactionStats


class SettlementRequest(RequestModel):
    """Request body for POST /v1/admin/transactions/settle"""

    transaction_id: uuid.UUID
    action: SettlementAction
    admin_comment: Optional[str] = Field(None, max_length=500)


class SettlementResponse(BaseModel):
    success: bool = True
    message: str
    transaction: TransactionSchema
