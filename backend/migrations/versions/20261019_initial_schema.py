"""Initial AIMS-Lite schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


USER_ROLE = sa.Enum("Student", "Instructor", "Advisor", "Admin", name="user_role")
ACCOUNT_STATUS = sa.Enum("PENDING", "ACTIVE", "BLOCKED", "REJECTED", name="account_status")
COURSE_STATUS = sa.Enum("PENDING_ADVISOR_APPROVAL", "APPROVED", "REJECTED", name="course_status")
ENROLLMENT_STATUS = sa.Enum(
    "PENDING_INSTRUCTOR_APPROVAL",
    "PENDING_ADVISOR_APPROVAL",
    "ENROLLED",
    "INSTRUCTOR_REJECTED",
    "ADVISOR_REJECTED",
    "DROPPED_BY_STUDENT",
    name="enrollment_status",
)
PROJECT_VISIBILITY = sa.Enum("PRIVATE", "INSTITUTE_PUBLIC", name="project_visibility")
PROJECT_STATUS = sa.Enum("ACTIVE", "CLOSED", name="project_status")
STUDENT_MODE = sa.Enum("NO_STUDENTS", "LIMITED_SLOTS", "OPEN", name="student_mode")
REQUEST_STATUS = sa.Enum("PENDING", "ACCEPTED", "REJECTED", name="project_request_status")
OTP_PURPOSE = sa.Enum("LOGIN", "SIGNUP", name="otp_purpose")


def upgrade():
    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=120), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=120), nullable=False),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("account_status", ACCOUNT_STATUS, nullable=False),
        sa.Column("department", sa.String(length=50), nullable=True),
        sa.Column("batch", sa.String(length=10), nullable=True),
        sa.Column("entry_no", sa.String(length=20), nullable=True),
        sa.Column("advisor_id", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True),
        sa.Column("active_session_id", sa.String(length=128), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "courses",
        sa.Column("course_id", sa.Integer(), primary_key=True),
        sa.Column("course_code", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("department", sa.String(length=50), nullable=True),
        sa.Column("acad_session", sa.String(length=20), nullable=True),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column("slot", sa.String(length=10), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("enrolled_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", COURSE_STATUS, nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("advisor_id", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("capacity >= 0", name="ck_courses_capacity_nonnegative"),
        sa.CheckConstraint("enrolled_count >= 0", name="ck_courses_enrolled_nonnegative"),
    )
    op.create_index("ix_courses_course_code", "courses", ["course_code"])

    op.create_table(
        "enrollments",
        sa.Column("enrollment_id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", ENROLLMENT_STATUS, nullable=False),
        sa.Column("grade", sa.String(length=3), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("student_id", "course_id", name="uq_enrollments_student_course"),
    )
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])

    op.create_table(
        "projects",
        sa.Column("project_id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("summary", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("domain", sa.String(length=100), nullable=False),
        sa.Column("visibility", PROJECT_VISIBILITY, nullable=False),
        sa.Column("status", PROJECT_STATUS, nullable=False),
        sa.Column("student_mode", STUDENT_MODE, nullable=False),
        sa.Column("student_slots", sa.Integer(), nullable=True),
        sa.Column("required_skills", sa.Text(), nullable=True),
        sa.Column("preferred_background", sa.Text(), nullable=True),
        sa.Column("expected_outcomes", sa.Text(), nullable=True),
        sa.Column("duration", sa.String(length=50), nullable=True),
        sa.Column("weekly_commitment", sa.String(length=50), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("student_slots IS NULL OR student_slots >= 0", name="ck_projects_slots_nonnegative"),
    )
    op.create_index("ix_projects_created_by", "projects", ["created_by"])

    op.create_table(
        "project_requests",
        sa.Column("request_id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", REQUEST_STATUS, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("project_id", "student_id", name="uq_project_requests_project_student"),
    )
    op.create_index("ix_project_requests_project_id", "project_requests", ["project_id"])
    op.create_index("ix_project_requests_student_id", "project_requests", ["student_id"])

    op.create_table(
        "project_members",
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.project_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("joined_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "otp_store",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=120), nullable=False),
        sa.Column("code_hash", sa.String(length=256), nullable=False),
        sa.Column("purpose", OTP_PURPOSE, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_otp_store_email", "otp_store", ["email"])

    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column("value", sa.String(length=255), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )


def downgrade():
    op.drop_table("system_settings")
    op.drop_index("ix_otp_store_email", table_name="otp_store")
    op.drop_table("otp_store")
    op.drop_table("project_members")
    op.drop_index("ix_project_requests_student_id", table_name="project_requests")
    op.drop_index("ix_project_requests_project_id", table_name="project_requests")
    op.drop_table("project_requests")
    op.drop_index("ix_projects_created_by", table_name="projects")
    op.drop_table("projects")
    op.drop_index("ix_enrollments_course_id", table_name="enrollments")
    op.drop_index("ix_enrollments_student_id", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_index("ix_courses_course_code", table_name="courses")
    op.drop_table("courses")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (OTP_PURPOSE, REQUEST_STATUS, STUDENT_MODE, PROJECT_STATUS, PROJECT_VISIBILITY,
                      ENROLLMENT_STATUS, COURSE_STATUS, ACCOUNT_STATUS, USER_ROLE):
        enum_type.drop(bind, checkfirst=True)
