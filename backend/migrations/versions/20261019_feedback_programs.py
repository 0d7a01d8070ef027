"""Co-instructors, course feedback and degree programs

Revision ID: 20261019_feedback_programs
Revises: 20261019_initial
Create Date: 2026-10-19 14:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_feedback_programs"
down_revision = "20261019_initial"
branch_labels = None
depends_on = None


FEEDBACK_TYPE = sa.Enum("Mid-sem", "End-sem", name="feedback_type")
PROGRAM_TYPE = sa.Enum(
    "B.Tech with Concentration",
    "B.Tech with Minor",
    "B.Tech with Additional Internship",
    name="program_type",
)
PROGRAM_STATUS = sa.Enum("PENDING", "APPROVED", "REJECTED", name="program_status")


def upgrade():
    op.create_table(
        "course_co_instructors",
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
                  primary_key=True),
        sa.Column("instructor_id", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="CASCADE"),
                  primary_key=True),
    )

    answer_columns = [sa.Column(f"q{n}", sa.String(length=50), nullable=False) for n in range(1, 11)]
    op.create_table(
        "course_instructor_feedback",
        sa.Column("feedback_id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False),
        sa.Column("instructor_id", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="CASCADE"),
                  nullable=False),
        sa.Column("feedback_type", FEEDBACK_TYPE, nullable=False),
        *answer_columns,
        sa.Column("q11", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("student_id", "course_id", "instructor_id", "feedback_type",
                            name="uq_feedback_student_course_instructor_type"),
    )
    op.create_index("ix_course_instructor_feedback_course_id", "course_instructor_feedback", ["course_id"])
    op.create_index("ix_course_instructor_feedback_instructor_id", "course_instructor_feedback", ["instructor_id"])

    op.create_table(
        "student_programs",
        sa.Column("program_id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("program_type", PROGRAM_TYPE, nullable=False),
        sa.Column("target_branch", sa.String(length=100), nullable=True),
        sa.Column("semester", sa.String(length=10), nullable=True),
        sa.Column("status", PROGRAM_STATUS, nullable=False),
        sa.Column("applied_at", sa.DateTime(), nullable=True),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
        sa.Column("decided_by", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True),
    )
    op.create_index("ix_student_programs_student_id", "student_programs", ["student_id"])
    op.create_index(
        "uq_student_programs_one_active",
        "student_programs",
        ["student_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('PENDING', 'APPROVED')"),
        sqlite_where=sa.text("status IN ('PENDING', 'APPROVED')"),
    )


def downgrade():
    op.drop_index("uq_student_programs_one_active", table_name="student_programs")
    op.drop_index("ix_student_programs_student_id", table_name="student_programs")
    op.drop_table("student_programs")
    op.drop_index("ix_course_instructor_feedback_instructor_id", table_name="course_instructor_feedback")
    op.drop_index("ix_course_instructor_feedback_course_id", table_name="course_instructor_feedback")
    op.drop_table("course_instructor_feedback")
    op.drop_table("course_co_instructors")

    bind = op.get_bind()
    for enum_type in (PROGRAM_STATUS, PROGRAM_TYPE, FEEDBACK_TYPE):
        enum_type.drop(bind, checkfirst=True)
