"""POST /v1/auth/* - registration, email verification, login and password recovery"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from lumabank.api.dependencies import get_email_client, get_request_id, rate_limit
from lumabank.api.v1.schemas import (
    AdminLoginResponse,
    AdminSchema,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    UserSummary,
    VerifyEmailRequest,
)
from lumabank.api.v1.serializers import serialize_profile
from lumabank.domain.models import RegistrationCommand
from lumabank.infrastructure.clients.email import EmailClient
from lumabank.infrastructure.database.session import get_db
from lumabank.services.accounts import AccountService
from lumabank.services.notifications import send_password_reset_email, send_verification_email

logger = logging.getLogger(__name__)

router = APIRouter()

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=201,
    dependencies=[Depends(rate_limit("registration"))],
)
def register(
    request_body: RegisterRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    email_client: EmailClient = Depends(get_email_client),
):
    """
    Register a customer.

    Flow:
    1. Check password strength, phone format and uniqueness of email and ID number
    2. Create the user and an unverified, unapproved account with zero balance
    3. Email the verification link after commit
    """
    user, token = AccountService(db).register(
        RegistrationCommand(
            name=request_body.name,
            email=request_body.email,
            password=request_body.password,
            phone=request_body.phone,
            address=request_body.address.model_dump(),
            id_number=request_body.id_number,
        )
    )
    background_tasks.add_task(send_verification_email, email_client, user.email, user.name, token)
    logger.info("Registration accepted", extra={"request_id": get_request_id(request), "user_id": str(user.id)})

    return RegisterResponse(
        message="Registration successful. Please check your email to verify your account.",
        user=UserSummary(id=user.id, name=user.name, email=user.email, verified=False, approved=False),
    )


@router.post("/verify-email", response_model=MessageResponse)
def verify_email(request_body: VerifyEmailRequest, db: Session = Depends(get_db)):
    AccountService(db).verify_email(request_body.token)
    return MessageResponse(message="Email verified successfully. Your account is now pending admin approval.")


@router.post("/login", response_model=LoginResponse, dependencies=[Depends(rate_limit("auth"))])
def login(request_body: LoginRequest, db: Session = Depends(get_db)):
    """Sign in a customer whose email is verified and whose account is approved"""
    result = AccountService(db).login(request_body.email, request_body.password)
    return LoginResponse(
        message="Login successful",
        token=result.token,
        user=serialize_profile(result.user, result.account),
    )


@router.post("/admin-login", response_model=AdminLoginResponse, dependencies=[Depends(rate_limit("auth"))])
def admin_login(request_body: LoginRequest, db: Session = Depends(get_db)):
    result = AccountService(db).admin_login(request_body.email, request_body.password)
    admin = result.admin
    return AdminLoginResponse(
        message="Admin login successful",
        token=result.token,
        admin=AdminSchema(id=admin.id, name=admin.name, email=admin.email, role=admin.role),
    )


@router.post("/forgot-password", response_model=MessageResponse, dependencies=[Depends(rate_limit("email"))])
def forgot_password(
    request_body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_client: EmailClient = Depends(get_email_client),
):
    """Same answer whether or not the account exists"""
    issued = AccountService(db).forgot_password(request_body.email)
    if issued is not None:
        user, token = issued
        background_tasks.add_task(send_password_reset_email, email_client, user.email, user.name, token)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(request_body: ResetPasswordRequest, db: Session = Depends(get_db)):
    AccountService(db).reset_password(
        request_body.token, request_body.new_password, request_body.confirm_password
    )
    return MessageResponse(message="Password has been reset successfully. You can now log in with your new password.")
