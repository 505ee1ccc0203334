# shared/auth.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Response
from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError
from passlib.context import CryptContext
from passlib.exc import PasswordSizeError

from shared.config import Settings
from shared.errors import AuthError, CredentialConfigurationError, ErrorCode, ValidationError


class CredentialStore:
    """bcrypt password hashing; the salt and work factor travel inside the hash."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, plaintext: str) -> str:
        try:
            return self._context.hash(plaintext)
        except PasswordSizeError:
            raise ValidationError(ErrorCode.INVALID_INPUT, "Password is too long")

    def verify(self, plaintext: str, hashed: str) -> bool:
        try:
            return self._context.verify(plaintext, hashed)
        except PasswordSizeError:
            # An oversized secret is a mismatch, with the same hashing cost as one
            self._context.dummy_verify()
            return False
        except (ValueError, TypeError) as exc:
            # passlib only raises here when the stored hash itself is unusable
            raise CredentialConfigurationError(f"Stored password hash is malformed: {exc}") from exc

    def dummy_verify(self) -> None:
        self._context.dummy_verify()


@dataclass(frozen=True)
class TokenClaims:
    account_id: str
    email: str
    role: str


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime
    ttl: timedelta


class TokenIssuer:
    def __init__(self, secret_key: str, algorithm: str = "HS256", default_ttl: timedelta = timedelta(hours=24)):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.default_ttl = default_ttl

    def issue(self, claims: TokenClaims, ttl: Optional[timedelta] = None) -> IssuedToken:
        ttl = ttl if ttl is not None else self.default_ttl
        # JWT timestamps are whole seconds; expires_at must match the exp claim
        now = datetime.now(timezone.utc).replace(microsecond=0)
        expire = (now + ttl).replace(microsecond=0)
        to_encode = {
            "sub": claims.account_id,
            "email": claims.email,
            "role": claims.role,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }
        token = jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)
        return IssuedToken(token=token, expires_at=expire, ttl=ttl)

    def verify(self, token: str) -> TokenClaims:
        try:
            jwt.get_unverified_claims(token)
        except JWTError:
            raise AuthError(ErrorCode.TOKEN_MALFORMED, "Malformed token")

        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise AuthError(ErrorCode.TOKEN_EXPIRED, "Token has expired")
        except JWTClaimsError:
            raise AuthError(ErrorCode.TOKEN_MALFORMED, "Token claims are invalid")
        except JWTError:
            raise AuthError(ErrorCode.BAD_SIGNATURE, "Token signature is invalid")

        account_id = payload.get("sub")
        email = payload.get("email")
        role = payload.get("role")
        if not account_id or not email or not role:
            raise AuthError(ErrorCode.TOKEN_MALFORMED, "Token is missing required fields")
        return TokenClaims(account_id=account_id, email=email, role=role)


def set_session_cookie(response: Response, issued: IssuedToken, settings: Settings) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=issued.token,
        max_age=int(issued.ttl.total_seconds()),
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.cookie_name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
