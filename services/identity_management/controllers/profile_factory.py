# services/identity_management/controllers/profile_factory.py
import secrets
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from services.identity_management.controllers.sequence_allocator import SequenceAllocator
from services.identity_management.models.profiles import (
    AdminProfile,
    ParentProfile,
    StudentProfile,
    TeacherProfile,
)
from services.identity_management.models.users import SchoolUser
from services.identity_management.schemas.users import (
    AdminRegistration,
    ParentRegistration,
    RegistrationBase,
    StudentRegistration,
    TeacherRegistration,
)
from shared.errors import ErrorCode, ValidationError

ADMIN_DEPARTMENT = "Administration"


def generate_student_id() -> str:
    return f"STU{date.today().year}{secrets.token_hex(4).upper()}"


def generate_teacher_id() -> str:
    return f"TCH{date.today().year}{secrets.token_hex(4).upper()}"


def derive_parent_id(user: SchoolUser) -> str:
    # Existing parent ids are the account id tail; keep the derivation stable.
    return f"PAR{user.id.hex[-6:].upper()}"


class RoleProfileFactory:
    def __init__(self, allocator: SequenceAllocator):
        self._allocator = allocator

    def check_required_fields(self, request: RegistrationBase) -> None:
        missing = []
        for name in request.required_fields:
            value = getattr(request, name, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        if missing:
            raise ValidationError(
                ErrorCode.MISSING_REQUIRED_FIELDS,
                f"Missing required fields for {request.role.lower()} registration",
                details=missing,
            )

    async def build(self, session: AsyncSession, user: SchoolUser, request: RegistrationBase):
        """Build the single profile row for `user`; the caller adds it to the session."""
        self.check_required_fields(request)

        if isinstance(request, StudentRegistration):
            roll_number = await self._allocator.allocate_roll_number(session, request.class_id, request.section)
            return StudentProfile(
                user_id=user.id,
                student_id=generate_student_id(),
                class_id=request.class_id,
                section=request.section,
                roll_number=roll_number,
                date_of_birth=request.date_of_birth,
                admission_date=date.today(),
                parent_email=request.parent_email.lower() if request.parent_email else None,
                emergency_name=request.emergency_name or "",
                emergency_phone=request.emergency_phone or "",
                emergency_relation=request.emergency_relation or "",
            )

        if isinstance(request, TeacherRegistration):
            return TeacherProfile(
                user_id=user.id,
                teacher_id=generate_teacher_id(),
                qualification=request.qualification,
                department=request.department,
                experience=request.experience or 0,
                salary=request.salary or 0,
                joining_date=date.today(),
            )

        if isinstance(request, ParentRegistration):
            return ParentProfile(
                user_id=user.id,
                parent_id=derive_parent_id(user),
                occupation=request.occupation or "",
                income=request.income,
            )

        if isinstance(request, AdminRegistration):
            return AdminProfile(user_id=user.id, department=ADMIN_DEPARTMENT)

        raise TypeError(f"Unsupported registration role: {getattr(request, 'role', None)!r}")
