"""Dependency injection for FastAPI endpoints"""

from typing import Callable, Optional

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lumabank.domain.exceptions import AuthenticationError, PermissionDenied
from lumabank.domain.models import Principal, Role
from lumabank.infrastructure.clients.email import EmailClient
from lumabank.infrastructure.ratelimit import RateLimitDecision, RateLimiter
from lumabank.infrastructure.security import decode_access_token
from lumabank.infrastructure.settlement import SettlementScheduler

bearer_scheme = HTTPBearer(auto_error=False)


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_email_client() -> EmailClient:
    """Provide email delivery client instance"""
    return EmailClient()


def get_settlement_scheduler(request: Request) -> SettlementScheduler:
    return request.app.state.settlement_scheduler


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """Resolve the caller from the bearer token; the token is the only source of identity"""
    if credentials is None:
        raise AuthenticationError("No token provided")
    principal = decode_access_token(credentials.credentials)
    request.state.principal = principal
    return principal


def require_user(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != Role.USER:
        raise PermissionDenied("Customer access required")
    return principal


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != Role.ADMIN:
        raise PermissionDenied("Admin access required")
    return principal


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _set_rate_limit_headers(response: Response, decision: RateLimitDecision) -> None:
    response.headers["X-RateLimit-Limit"] = str(decision.limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    response.headers["X-RateLimit-Reset"] = str(decision.reset_in)


def rate_limit(action: str) -> Callable[..., None]:
    """Count an anonymous request against the caller's IP"""

    def dependency(
        request: Request,
        response: Response,
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> None:
        _set_rate_limit_headers(response, limiter.hit(action, _client_ip(request)))

    return dependency


def user_rate_limit(action: str) -> Callable[..., None]:
    """Count an authenticated request against the caller's user id"""

    def dependency(
        response: Response,
        principal: Principal = Depends(require_user),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> None:
        _set_rate_limit_headers(response, limiter.hit(action, str(principal.subject_id)))

    return dependency
