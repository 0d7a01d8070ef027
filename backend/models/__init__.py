from extensions import db
from .user import User, Role, AccountStatus
from .course import Course, CourseStatus, course_co_instructors
from .enrollment import Enrollment, EnrollmentStatus, GRADE_SCHEME, GRADE_POINTS
from .project import Project, ProjectRequest, ProjectMember, StudentMode, ProjectVisibility, ProjectStatus, RequestStatus
from .otp_code import OtpCode, OtpPurpose
from .system_settings import SystemSettings
from .feedback import CourseFeedback, FeedbackType, ANSWER_KEYS
from .program import StudentProgram, ProgramType, ProgramStatus, ACTIVE_PROGRAM_STATUSES

__all__ = [
    'db',
    'User',
    'Role',
    'AccountStatus',
    'Course',
    'CourseStatus',
    'course_co_instructors',
    'Enrollment',
    'EnrollmentStatus',
    'GRADE_SCHEME',
    'GRADE_POINTS',
    'Project',
    'ProjectRequest',
    'ProjectMember',
    'StudentMode',
    'ProjectVisibility',
    'ProjectStatus',
    'RequestStatus',
    'OtpCode',
    'OtpPurpose',
    'SystemSettings',
    'CourseFeedback',
    'FeedbackType',
    'ANSWER_KEYS',
    'StudentProgram',
    'ProgramType',
    'ProgramStatus',
    'ACTIVE_PROGRAM_STATUSES'
]
