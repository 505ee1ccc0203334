# services/identity_management/models/users.py
from sqlalchemy import Column, String, Enum, DateTime, Boolean, Index, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from shared.db import Base
import enum
import uuid


class SchoolUserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    PARENT = "PARENT"


class SchoolUser(Base):
    __tablename__ = "school_users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)  # always stored lowercased
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(SchoolUserRole, name="school_user_role"), nullable=False)
    phone = Column(String(32), nullable=True)
    address = Column(String, nullable=True)
    avatar = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    student_profile = relationship("StudentProfile", back_populates="user", uselist=False)
    teacher_profile = relationship("TeacherProfile", back_populates="user", uselist=False)
    parent_profile = relationship("ParentProfile", back_populates="user", uselist=False)
    admin_profile = relationship("AdminProfile", back_populates="user", uselist=False)

    __table_args__ = (
        UniqueConstraint("email", name="uq_school_users_email"),
        Index("idx_user_email_role", "email", "role"),  # login lookup
    )

    @property
    def profile(self):
        """The one profile matching this account's role (must be eager-loaded)."""
        return getattr(self, PROFILE_RELATIONSHIPS[self.role])


PROFILE_RELATIONSHIPS = {
    SchoolUserRole.STUDENT: "student_profile",
    SchoolUserRole.TEACHER: "teacher_profile",
    SchoolUserRole.PARENT: "parent_profile",
    SchoolUserRole.ADMIN: "admin_profile",
}
