from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, ClassVar, Literal, Optional, Tuple, Union
from datetime import date, datetime
from uuid import UUID

from services.identity_management.models.users import SchoolUserRole

# bcrypt reads at most 72 bytes; anything far beyond that is not a password
MAX_PASSWORD_LENGTH = 128


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegistrationBase(CamelModel):
    name: str = Field(min_length=2, description="Name must be at least 2 characters")
    email: EmailStr
    password: str = Field(
        min_length=6,
        max_length=MAX_PASSWORD_LENGTH,
        description="Password must be at least 6 characters",
    )
    phone: Optional[str] = None
    address: Optional[str] = None

    # Fields that must be present and non-blank for this role.
    required_fields: ClassVar[Tuple[str, ...]] = ()

    @property
    def allocation_key(self) -> Optional[Tuple[str, str]]:
        return None


class StudentRegistration(RegistrationBase):
    role: Literal["STUDENT"]
    class_id: str
    section: str
    date_of_birth: date
    parent_email: Optional[EmailStr] = None
    emergency_name: Optional[str] = None
    emergency_phone: Optional[str] = None
    emergency_relation: Optional[str] = None

    required_fields: ClassVar[Tuple[str, ...]] = ("class_id", "section", "date_of_birth")

    @property
    def allocation_key(self) -> Optional[Tuple[str, str]]:
        return (self.class_id, self.section)


class TeacherRegistration(RegistrationBase):
    role: Literal["TEACHER"]
    qualification: str
    department: str
    experience: Optional[int] = Field(default=None, ge=0)
    salary: Optional[float] = Field(default=None, ge=0)

    required_fields: ClassVar[Tuple[str, ...]] = ("qualification", "department")


class ParentRegistration(RegistrationBase):
    role: Literal["PARENT"]
    occupation: Optional[str] = None
    income: Optional[float] = Field(default=None, ge=0)


class AdminRegistration(RegistrationBase):
    role: Literal["ADMIN"]


RegistrationRequest = Annotated[
    Union[StudentRegistration, TeacherRegistration, ParentRegistration, AdminRegistration],
    Field(discriminator="role"),
]


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_LENGTH)
    role: SchoolUserRole


class AccountSummary(CamelModel):
    id: UUID
    name: str
    email: str
    role: SchoolUserRole
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool = True

    # Student
    student_id: Optional[str] = None
    class_id: Optional[str] = None
    section: Optional[str] = None
    roll_number: Optional[int] = None

    # Teacher / Admin
    teacher_id: Optional[str] = None
    department: Optional[str] = None
    qualification: Optional[str] = None

    # Parent
    parent_id: Optional[str] = None
    occupation: Optional[str] = None


class LoginResponse(CamelModel):
    user: AccountSummary
    token: str
    token_type: str = "bearer"
    expires_in: int
    expires_at: datetime


class MessageOut(CamelModel):
    message: str
