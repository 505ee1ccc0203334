# services/identity_management/api/auth_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.identity_management.controllers.identity_registry import IdentityRegistry
from services.identity_management.schemas.users import (
    AccountSummary,
    LoginRequest,
    LoginResponse,
    MessageOut,
    RegistrationRequest,
)
from shared.auth import TokenClaims, clear_session_cookie, set_session_cookie
from shared.errors import AuthError, ErrorCode

router = APIRouter(prefix="/auth", tags=["Auth"])
bearer_scheme = HTTPBearer(auto_error=False)


def get_registry(request: Request) -> IdentityRegistry:
    return request.app.state.registry


def get_current_claims(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    registry: IdentityRegistry = Depends(get_registry),
) -> TokenClaims:
    token = credentials.credentials if credentials else request.cookies.get(registry.settings.cookie_name)
    if not token:
        raise AuthError(ErrorCode.INVALID_CREDENTIALS, "Not authenticated")
    return registry.tokens.verify(token)


# --- REGISTRATION (any role) ---
@router.post("/register", response_model=AccountSummary, status_code=status.HTTP_201_CREATED)
async def register_account(
    payload: RegistrationRequest,
    registry: IdentityRegistry = Depends(get_registry),
):
    return await registry.register(payload)


# --- LOGIN ---
@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    registry: IdentityRegistry = Depends(get_registry),
):
    summary, issued = await registry.authenticate(payload.email, payload.password, payload.role)
    set_session_cookie(response, issued, registry.settings)
    return LoginResponse(
        user=summary,
        token=issued.token,
        expires_in=int(issued.ttl.total_seconds()),
        expires_at=issued.expires_at,
    )


# --- CURRENT ACCOUNT ---
@router.get("/me", response_model=AccountSummary)
async def read_current_account(
    claims: TokenClaims = Depends(get_current_claims),
    registry: IdentityRegistry = Depends(get_registry),
):
    return await registry.get_account(claims)


# --- LOGOUT ---
@router.post("/logout", response_model=MessageOut)
async def logout(response: Response, registry: IdentityRegistry = Depends(get_registry)):
    clear_session_cookie(response, registry.settings)
    return MessageOut(message="Logged out")
