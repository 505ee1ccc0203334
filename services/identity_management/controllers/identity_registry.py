# services/identity_management/controllers/identity_registry.py

import asyncio
import uuid
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from services.identity_management.controllers.profile_factory import RoleProfileFactory
from services.identity_management.controllers.sequence_allocator import SequenceAllocator
from services.identity_management.models.profiles import (
    AdminProfile,
    ParentProfile,
    StudentProfile,
    TeacherProfile,
)
from services.identity_management.models.users import PROFILE_RELATIONSHIPS, SchoolUser, SchoolUserRole
from services.identity_management.schemas.users import AccountSummary, RegistrationBase
from shared.app_logger import get_logger
from shared.auth import CredentialStore, IssuedToken, TokenClaims, TokenIssuer
from shared.config import Settings
from shared.errors import AuthError, ConflictError, ErrorCode, InternalError

logger = get_logger("identity_registry")


def build_account_summary(user: SchoolUser, profile) -> AccountSummary:
    fields = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "phone": user.phone,
        "address": user.address,
        "avatar": user.avatar,
        "is_active": user.is_active,
    }
    if isinstance(profile, StudentProfile):
        fields.update(
            student_id=profile.student_id,
            class_id=profile.class_id,
            section=profile.section,
            roll_number=profile.roll_number,
        )
    elif isinstance(profile, TeacherProfile):
        fields.update(
            teacher_id=profile.teacher_id,
            department=profile.department,
            qualification=profile.qualification,
        )
    elif isinstance(profile, ParentProfile):
        fields.update(parent_id=profile.parent_id, occupation=profile.occupation)
    elif isinstance(profile, AdminProfile):
        fields.update(department=profile.department)
    return AccountSummary(**fields)


def _is_email_violation(exc: IntegrityError) -> bool:
    # Postgres reports the constraint name, SQLite the table.column
    message = str(exc.orig).lower()
    return "uq_school_users_email" in message or "school_users.email" in message


class IdentityRegistry:
    """Registers and authenticates school accounts."""

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker,
        credentials: Optional[CredentialStore] = None,
        tokens: Optional[TokenIssuer] = None,
        allocator: Optional[SequenceAllocator] = None,
    ):
        self.settings = settings
        self._session_factory = session_factory
        self.credentials = credentials or CredentialStore(rounds=settings.bcrypt_rounds)
        self.tokens = tokens or TokenIssuer(
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
            default_ttl=settings.access_token_ttl,
        )
        self.allocator = allocator or SequenceAllocator()
        self.profiles = RoleProfileFactory(self.allocator)

    # --- REGISTRATION ---
    async def register(self, request: RegistrationBase) -> AccountSummary:
        email = request.email.lower()

        # Reject bad input before anything touches the store
        self.profiles.check_required_fields(request)

        if await self._email_exists(email):
            raise ConflictError(ErrorCode.EMAIL_EXISTS, "User with this email already exists")

        hashed_pw = await asyncio.to_thread(self.credentials.hash, request.password)

        for attempt in (1, 2):
            try:
                summary = await asyncio.wait_for(
                    self._create_account(request, email, hashed_pw),
                    timeout=self.settings.transaction_timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.error("Registration transaction for %s account timed out", request.role)
                raise InternalError(ErrorCode.TIMEOUT, "Registration timed out")
            except IntegrityError as exc:
                if _is_email_violation(exc):
                    raise ConflictError(ErrorCode.EMAIL_EXISTS, "User with this email already exists")
                if attempt == 2:
                    logger.error("Identifier collision persisted for %s account: %s", request.role, exc.orig)
                    raise ConflictError(
                        ErrorCode.IDENTIFIER_COLLISION,
                        "Could not allocate a unique identifier, please retry",
                    )
                logger.warning("Identifier collision while registering %s account, retrying", request.role)
                await asyncio.sleep(self.settings.allocation_retry_backoff_seconds)
                continue
            except SQLAlchemyError as exc:
                logger.exception("Registration transaction failed")
                raise InternalError(ErrorCode.TRANSACTION_FAILED, f"Registration failed: {exc}") from exc

            logger.info("Registered %s account %s", summary.role.value, summary.id)
            return summary

    async def _bounded(self, operation, what: str):
        try:
            return await asyncio.wait_for(operation, timeout=self.settings.transaction_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error("%s timed out", what)
            raise InternalError(ErrorCode.TIMEOUT, f"{what} timed out")

    async def _email_exists(self, email: str) -> bool:
        async def lookup() -> bool:
            async with self._session_factory() as session:
                result = await session.execute(select(SchoolUser.id).where(SchoolUser.email == email))
                return result.first() is not None

        try:
            return await self._bounded(lookup(), "Email lookup")
        except SQLAlchemyError as exc:
            raise InternalError(ErrorCode.TRANSACTION_FAILED, f"Email lookup failed: {exc}") from exc

    async def _create_account(self, request: RegistrationBase, email: str, hashed_pw: str) -> AccountSummary:
        async with self.allocator.hold(request.allocation_key):
            async with self._session_factory() as session:
                async with session.begin():
                    new_user = SchoolUser(
                        id=uuid.uuid4(),
                        name=request.name,
                        email=email,
                        hashed_password=hashed_pw,
                        role=SchoolUserRole(request.role),
                        phone=request.phone,
                        address=request.address,
                        is_active=True,
                    )
                    session.add(new_user)
                    await session.flush()

                    profile = await self.profiles.build(session, new_user, request)
                    session.add(profile)
                    await session.flush()

                return build_account_summary(new_user, profile)

    # --- LOGIN ---
    async def authenticate(self, email: str, password: str, role: SchoolUserRole) -> Tuple[AccountSummary, IssuedToken]:
        email = email.lower()
        role = SchoolUserRole(role)

        user = await self._find_active_user(SchoolUser.email == email, role)
        if user is None:
            # Spend the same hashing time as a real mismatch
            await asyncio.to_thread(self.credentials.dummy_verify)
            logger.info("Rejected %s login attempt", role.value)
            raise AuthError.invalid_credentials()

        valid = await asyncio.to_thread(self.credentials.verify, password, user.hashed_password)
        if not valid:
            logger.info("Rejected %s login attempt", role.value)
            raise AuthError.invalid_credentials()

        issued = self.tokens.issue(TokenClaims(account_id=str(user.id), email=user.email, role=user.role.value))
        logger.info("Account %s logged in as %s", user.id, role.value)
        return build_account_summary(user, user.profile), issued

    # --- CURRENT ACCOUNT ---
    async def get_account(self, claims: TokenClaims) -> AccountSummary:
        try:
            account_id = uuid.UUID(claims.account_id)
            role = SchoolUserRole(claims.role)
        except ValueError:
            raise AuthError(ErrorCode.TOKEN_MALFORMED, "Malformed token")

        user = await self._find_active_user(SchoolUser.id == account_id, role)
        if user is None:
            raise AuthError.invalid_credentials()
        return build_account_summary(user, user.profile)

    async def _find_active_user(self, criterion, role: SchoolUserRole) -> Optional[SchoolUser]:
        profile_attr = getattr(SchoolUser, PROFILE_RELATIONSHIPS[role])

        async def lookup() -> Optional[SchoolUser]:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(SchoolUser)
                    .options(selectinload(profile_attr))
                    .where(
                        criterion,
                        SchoolUser.role == role,
                        SchoolUser.is_active == True,  # noqa: E712
                    )
                )
                return result.scalars().first()

        try:
            return await self._bounded(lookup(), "Account lookup")
        except SQLAlchemyError as exc:
            raise InternalError(ErrorCode.TRANSACTION_FAILED, f"Account lookup failed: {exc}") from exc
