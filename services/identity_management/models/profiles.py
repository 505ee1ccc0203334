# services/identity_management/models/profiles.py
from sqlalchemy import Column, String, Integer, Float, Date, ForeignKey, UniqueConstraint, Index, Uuid
from sqlalchemy.orm import relationship
from shared.db import Base
from datetime import date
import uuid


class StudentProfile(Base):
    __tablename__ = "student_profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("school_users.id", ondelete="CASCADE"), nullable=False, unique=True)
    student_id = Column(String(32), nullable=False, unique=True)
    class_id = Column(String(50), nullable=False)
    section = Column(String(20), nullable=False)
    roll_number = Column(Integer, nullable=False)
    date_of_birth = Column(Date, nullable=False)
    admission_date = Column(Date, nullable=False, default=date.today)
    parent_email = Column(String(255), nullable=True)
    emergency_name = Column(String(100), nullable=False, default="")
    emergency_phone = Column(String(32), nullable=False, default="")
    emergency_relation = Column(String(50), nullable=False, default="")

    __table_args__ = (
        UniqueConstraint("class_id", "section", "roll_number", name="uq_student_class_section_roll"),
        Index("ix_student_class_section", "class_id", "section"),
    )

    user = relationship("SchoolUser", back_populates="student_profile")


class TeacherProfile(Base):
    __tablename__ = "teacher_profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("school_users.id", ondelete="CASCADE"), nullable=False, unique=True)
    teacher_id = Column(String(32), nullable=False, unique=True)
    qualification = Column(String(200), nullable=False)
    department = Column(String(100), nullable=False)
    experience = Column(Integer, nullable=False, default=0)  # years
    salary = Column(Float, nullable=False, default=0)
    joining_date = Column(Date, nullable=False, default=date.today)

    user = relationship("SchoolUser", back_populates="teacher_profile")


class ParentProfile(Base):
    __tablename__ = "parent_profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("school_users.id", ondelete="CASCADE"), nullable=False, unique=True)
    parent_id = Column(String(32), nullable=False, unique=True)
    occupation = Column(String(100), nullable=False, default="")
    income = Column(Float, nullable=True)

    user = relationship("SchoolUser", back_populates="parent_profile")


class AdminProfile(Base):
    __tablename__ = "admin_profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("school_users.id", ondelete="CASCADE"), nullable=False, unique=True)
    department = Column(String(100), nullable=False, default="Administration")

    user = relationship("SchoolUser", back_populates="admin_profile")
