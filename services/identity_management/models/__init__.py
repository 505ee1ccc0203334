from .users import SchoolUser, SchoolUserRole
from .profiles import StudentProfile, TeacherProfile, ParentProfile, AdminProfile
