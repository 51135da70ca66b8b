"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional


class TransactionType(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"
    DEPOSIT = "deposit"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class SettlementAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller resolved from a verified token"""

    subject_id: uuid.UUID
    email: str
    role: Role
    account_number: Optional[str] = None


@dataclass
class RegistrationCommand:
    name: str
    email: str
    password: str
    phone: str
    address: Dict[str, str]
    id_number: str


@dataclass
class TransferCommand:
    receiver_account: str
    amount: Decimal
    type: TransactionType
    narration: str = ""


@dataclass
class DepositCommand:
    amount: Decimal
    description: str = "Bank Deposit"


@dataclass
class SettlementCommand:
    transaction_id: uuid.UUID
    action: SettlementAction
    admin_comment: Optional[str] = None


@dataclass
class MovementDraft:
    """
    One money movement to be applied atomically.

    debit_user_id names the owner of the account to debit (None for bank
    deposits). credit_account_number names the account to credit (None when
    the receiver is outside the bank). receiver_account is the number recorded
    on the ledger row, which may be a foreign account.
    """

    type: TransactionType
    status: TransactionStatus
    amount_cents: int
    ref_prefix: str
    debit_user_id: Optional[uuid.UUID] = None
    credit_user_id: Optional[uuid.UUID] = None
    credit_account_number: Optional[str] = None
    receiver_account: Optional[str] = None
    narration: str = ""
