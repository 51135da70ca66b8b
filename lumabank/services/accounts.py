"""Customer onboarding, authentication and account administration"""

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lumabank.config import settings
from lumabank.domain.exceptions import (
    AccountNotApproved,
    AccountNotVerified,
    AlreadyApproved,
    AlreadyVerified,
    EmailAlreadyRegistered,
    IdNumberAlreadyRegistered,
    InvalidCredentials,
    InvalidToken,
    TransactionAborted,
    UserNotFound,
    ValidationError,
)
from lumabank.domain.models import (
    MovementDraft,
    Principal,
    RegistrationCommand,
    Role,
    TransactionStatus,
    TransactionType,
)
from lumabank.domain.rules import validate_password_strength, validate_phone
from lumabank.infrastructure.database.models import Account, Admin, User, utcnow
from lumabank.infrastructure.database.repositories import AccountRepository, AdminRepository, UserRepository
from lumabank.infrastructure.database.session import atomic
from lumabank.infrastructure.security import (
    create_access_token,
    generate_account_number,
    generate_one_time_token,
    hash_password,
    one_time_token_expiry,
    verify_password,
)
from lumabank.services.balance import BalanceMutator
from lumabank.utils.money import to_cents

logger = logging.getLogger(__name__)

ACCOUNT_NUMBER_ATTEMPTS = 10


@dataclass
class LoginResult:
    token: str
    user: User
    account: Account


@dataclass
class AdminLoginResult:
    token: str
    admin: Admin


class AccountService:
    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)
        self.accounts = AccountRepository(db)
        self.admins = AdminRepository(db)
        self.mutator = BalanceMutator(db)

    # Onboarding

    def register(self, command: RegistrationCommand) -> Tuple[User, str]:
        """
        Create a user with an unverified, unapproved, zero-balance account.

        Returns:
            (user, verification token) - the token goes out by email
        """
        email = command.email.strip().lower()
        id_number = command.id_number.strip()
        validate_password_strength(command.password)
        phone = validate_phone(command.phone)

        if self.users.get_by_email(email) is not None:
            raise EmailAlreadyRegistered()
        if self.users.get_by_id_number(id_number) is not None:
            raise IdNumberAlreadyRegistered()

        token = generate_one_time_token()
        try:
            with atomic(self.db):
                user = self.users.create(
                    name=command.name.strip(),
                    email=email,
                    password_hash=hash_password(command.password),
                    phone=phone,
                    address=command.address,
                    id_number=id_number,
                    verification_token=token,
                    verification_token_expires=one_time_token_expiry(),
                )
                self.accounts.create(user.id)
        except TransactionAborted as e:
            # A concurrent registration won the unique email or id_number key
            if isinstance(e.__cause__, IntegrityError):
                if self.users.get_by_email(email) is not None:
                    raise EmailAlreadyRegistered() from e
                if self.users.get_by_id_number(id_number) is not None:
                    raise IdNumberAlreadyRegistered() from e
            raise

        logger.info("User registered", extra={"user_id": str(user.id)})
        return user, token

    def verify_email(self, token: str) -> User:
        user = self.users.get_by_verification_token(token, utcnow())
        if user is None:
            raise InvalidToken("Invalid or expired verification token. Please request a new verification email.")

        account = self.accounts.get_by_user(user.id)
        if account.verified:
            raise AlreadyVerified()

        with atomic(self.db):
            account.verified = True
            user.verification_token = None
            user.verification_token_expires = None
        return user

    def approve_user(self, user_id: uuid.UUID) -> Tuple[User, Account]:
        """
        Approve a pending user: assign a unique account number, mark the
        account verified and approved, and credit the welcome bonus, all in
        one atomic unit.
        """
        with atomic(self.db):
            user = self.users.get(user_id)
            if user is None:
                raise UserNotFound()
            account = self.accounts.get_by_user(user.id, for_update=True)
            if account.approved:
                raise AlreadyApproved()

            account.account_number = self._unique_account_number()
            account.verified = True
            account.approved = True
            self.db.flush()

            if settings.welcome_bonus > 0:
                self.mutator.stage(
                    MovementDraft(
                        type=TransactionType.DEPOSIT,
                        status=TransactionStatus.COMPLETED,
                        amount_cents=to_cents(settings.welcome_bonus),
                        ref_prefix="DEP",
                        credit_user_id=user.id,
                        narration="Welcome bonus",
                    )
                )

        logger.info("User approved", extra={"user_id": str(user_id)})
        return self.users.get(user_id), self.accounts.get_by_user(user_id)

    def _unique_account_number(self) -> str:
        for _ in range(ACCOUNT_NUMBER_ATTEMPTS):
            candidate = generate_account_number()
            if not self.accounts.number_exists(candidate):
                return candidate
        raise TransactionAborted("Failed to generate unique account number")

    # Authentication

    def login(self, email: str, password: str) -> LoginResult:
        """
        Raises:
            InvalidCredentials: unknown email or wrong password
            AccountNotVerified / AccountNotApproved: credentials are right but
                the account cannot sign in yet
        """
        user = self.users.get_by_email(email.strip())
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentials()

        account = self.accounts.get_by_user(user.id)
        if not account.verified:
            raise AccountNotVerified()
        if not account.approved:
            raise AccountNotApproved()

        token = create_access_token(
            Principal(subject_id=user.id, email=user.email, role=Role.USER, account_number=account.account_number)
        )
        return LoginResult(token=token, user=user, account=account)

    def admin_login(self, email: str, password: str) -> AdminLoginResult:
        admin = self.admins.get_by_email(email.strip())
        if admin is None or not verify_password(password, admin.password_hash):
            raise InvalidCredentials()

        with atomic(self.db):
            admin.last_login = utcnow()

        token = create_access_token(Principal(subject_id=admin.id, email=admin.email, role=Role.ADMIN))
        return AdminLoginResult(token=token, admin=admin)

    # Passwords

    def forgot_password(self, email: str) -> Optional[Tuple[User, str]]:
        """
        Issue a reset token for an active account.

        Returns None for unknown or inactive accounts; callers answer the
        same way in both cases so account existence is not revealed.
        """
        user = self.users.get_by_email(email.strip())
        if user is None:
            return None
        account = self.accounts.get_by_user(user.id)
        if not (account.verified and account.approved):
            return None

        token = generate_one_time_token()
        with atomic(self.db):
            user.password_reset_token = token
            user.password_reset_expires = one_time_token_expiry()
        return user, token

    def reset_password(self, token: str, new_password: str, confirm_password: str) -> User:
        if new_password != confirm_password:
            raise ValidationError("Password confirmation does not match new password")
        validate_password_strength(new_password)

        user = self.users.get_by_reset_token(token, utcnow())
        if user is None:
            raise InvalidToken("Invalid or expired reset token. Please request a new password reset.")

        with atomic(self.db):
            user.password_hash = hash_password(new_password)
            user.password_reset_token = None
            user.password_reset_expires = None
        return user

    def change_password(
        self, user_id: uuid.UUID, current_password: str, new_password: str, confirm_password: str
    ) -> None:
        if new_password != confirm_password:
            raise ValidationError("Password confirmation does not match new password")

        user = self.users.get(user_id)
        if user is None:
            raise UserNotFound()
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        if verify_password(new_password, user.password_hash):
            raise ValidationError("New password must be different from current password")
        validate_password_strength(new_password)

        with atomic(self.db):
            user.password_hash = hash_password(new_password)

    def change_admin_password(
        self, admin_id: uuid.UUID, current_password: str, new_password: str, confirm_password: str
    ) -> None:
        if new_password != confirm_password:
            raise ValidationError("Password confirmation does not match new password")

        admin = self.admins.get(admin_id)
        if admin is None:
            raise UserNotFound("Admin not found")
        if not verify_password(current_password, admin.password_hash):
            raise ValidationError("Current password is incorrect")
        validate_password_strength(new_password)

        with atomic(self.db):
            admin.password_hash = hash_password(new_password)
        logger.info("Admin password changed", extra={"admin_id": str(admin_id)})

    # Reads

    def profile(self, user_id: uuid.UUID) -> Tuple[User, Account]:
        user = self.users.get(user_id)
        if user is None:
            raise UserNotFound()
        return user, self.accounts.get_by_user(user.id)

    def list_users(self) -> Tuple[List[User], List[User], Dict[str, int]]:
        """(pending users oldest first, 50 newest approved users, account stats)"""
        pending = self.users.list_by_approval(approved=False)
        approved = self.users.list_by_approval(approved=True, limit=50)
        return pending, approved, self.accounts.stats()


def seed_default_admin(db: Session) -> Optional[Admin]:
    """Create the configured default admin unless one with that email exists"""
    repo = AdminRepository(db)
    if repo.get_by_email(settings.default_admin_email) is not None:
        return None
    with atomic(db):
        admin = repo.create(
            name=settings.default_admin_name,
            email=settings.default_admin_email,
            password_hash=hash_password(settings.default_admin_password),
            role="superadmin",
        )
    logger.info("Default admin created", extra={"admin_email": settings.default_admin_email})
    return admin
