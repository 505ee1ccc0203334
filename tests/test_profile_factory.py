"""
RoleProfileFactory builds exactly one profile of the matching kind per role.
"""
from __future__ import annotations

import uuid
from datetime import date

import pytest

from services.identity_management.controllers.profile_factory import ADMIN_DEPARTMENT, RoleProfileFactory
from services.identity_management.controllers.sequence_allocator import SequenceAllocator
from services.identity_management.models import (
    AdminProfile,
    ParentProfile,
    SchoolUser,
    SchoolUserRole,
    StudentProfile,
    TeacherProfile,
)
from services.identity_management.schemas.users import StudentRegistration, TeacherRegistration
from shared.errors import ErrorCode, ValidationError

pytestmark = pytest.mark.anyio


def _user(role: SchoolUserRole) -> SchoolUser:
    return SchoolUser(id=uuid.uuid4(), name="x", email="x@x.com", hashed_password="x", role=role)


@pytest.fixture
def factory() -> RoleProfileFactory:
    return RoleProfileFactory(SequenceAllocator())


async def test_student_profile(session_factory, factory, make_student):
    user = _user(SchoolUserRole.STUDENT)
    async with session_factory() as session:
        profile = await factory.build(session, user, make_student(emergencyName="Ravi"))

    assert isinstance(profile, StudentProfile)
    assert profile.user_id == user.id
    assert profile.roll_number == 1
    assert profile.class_id == "10" and profile.section == "A"
    assert profile.date_of_birth == date(2008, 1, 1)
    assert profile.admission_date == date.today()
    assert profile.student_id.startswith(f"STU{date.today().year}")
    assert profile.emergency_name == "Ravi"
    assert profile.emergency_phone == ""


async def test_student_ids_do_not_repeat(session_factory, factory, make_student):
    async with session_factory() as session:
        ids = {
            (await factory.build(session, _user(SchoolUserRole.STUDENT), make_student())).student_id
            for _ in range(20)
        }
    assert len(ids) == 20


async def test_teacher_profile_defaults(session_factory, factory, make_teacher):
    async with session_factory() as session:
        profile = await factory.build(session, _user(SchoolUserRole.TEACHER), make_teacher())

    assert isinstance(profile, TeacherProfile)
    assert profile.teacher_id.startswith("TCH")
    assert profile.experience == 0
    assert profile.salary == 0
    assert profile.department == "Science"
    assert profile.joining_date == date.today()


async def test_teacher_profile_keeps_given_experience(session_factory, factory, make_teacher):
    async with session_factory() as session:
        profile = await factory.build(session, _user(SchoolUserRole.TEACHER), make_teacher(experience=7, salary=42000))

    assert profile.experience == 7
    assert profile.salary == 42000


async def test_parent_id_derives_from_account_id(session_factory, factory, make_parent):
    user = _user(SchoolUserRole.PARENT)
    async with session_factory() as session:
        profile = await factory.build(session, user, make_parent())

    assert isinstance(profile, ParentProfile)
    assert profile.parent_id == "PAR" + user.id.hex[-6:].upper()
    assert profile.occupation == ""
    assert profile.income is None


async def test_admin_profile_gets_default_department(session_factory, factory, make_admin):
    async with session_factory() as session:
        profile = await factory.build(session, _user(SchoolUserRole.ADMIN), make_admin())

    assert isinstance(profile, AdminProfile)
    assert profile.department == ADMIN_DEPARTMENT == "Administration"


async def test_every_role_has_a_builder(session_factory, factory, make_student, make_teacher, make_parent, make_admin):
    requests = {
        SchoolUserRole.STUDENT: make_student(),
        SchoolUserRole.TEACHER: make_teacher(),
        SchoolUserRole.PARENT: make_parent(),
        SchoolUserRole.ADMIN: make_admin(),
    }
    assert set(requests) == set(SchoolUserRole)

    async with session_factory() as session:
        for role, request in requests.items():
            assert await factory.build(session, _user(role), request) is not None


async def test_blank_student_fields_are_missing(session_factory, factory):
    request = StudentRegistration.model_construct(
        name="Asha",
        email="asha@x.com",
        password="secret1",
        role="STUDENT",
        class_id="  ",
        section="A",
        date_of_birth=None,
    )

    async with session_factory() as session:
        with pytest.raises(ValidationError) as excinfo:
            await factory.build(session, _user(SchoolUserRole.STUDENT), request)

    assert excinfo.value.code == ErrorCode.MISSING_REQUIRED_FIELDS
    assert excinfo.value.details == ["class_id", "date_of_birth"]


async def test_blank_teacher_fields_are_missing(factory):
    request = TeacherRegistration.model_construct(
        name="Ravi",
        email="ravi@school.org",
        password="teach123",
        role="TEACHER",
        qualification="",
        department="Science",
    )

    with pytest.raises(ValidationError) as excinfo:
        factory.check_required_fields(request)
    assert excinfo.value.details == ["qualification"]
