"""Customer notification emails, sent after the triggering change has committed"""

from lumabank.config import settings
from lumabank.infrastructure.clients.email import EmailClient


async def send_verification_email(client: EmailClient, email: str, name: str, token: str) -> bool:
    link = f"{settings.frontend_url}/verify-email?token={token}"
    body = (
        f"Hello {name},\n\n"
        "Thank you for registering with LumaBank. Please verify your email address:\n\n"
        f"{link}\n\n"
        f"This link expires in {settings.verification_token_ttl_hours} hours."
    )
    return await client.send(email, "Verify your LumaBank email address", body)


async def send_password_reset_email(client: EmailClient, email: str, name: str, token: str) -> bool:
    link = f"{settings.frontend_url}/reset-password?token={token}"
    body = (
        f"Hello {name},\n\n"
        "We received a request to reset your LumaBank password:\n\n"
        f"{link}\n\n"
        "If you did not ask for this, you can ignore this email."
    )
    return await client.send(email, "Reset your LumaBank password", body)


async def send_approval_email(client: EmailClient, email: str, name: str, account_number: str) -> bool:
    body = (
        f"Hello {name},\n\n"
        "Your LumaBank account has been approved.\n"
        f"Account number: {account_number}\n\n"
        f"You can now sign in at {settings.frontend_url}/login."
    )
    return await client.send(email, "Your LumaBank account is approved", body)
