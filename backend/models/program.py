import enum
from extensions import db
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, text
from utils.timezone import local_now_naive


class ProgramType(str, enum.Enum):
    """Degree variants a student can apply for; General B.Tech is the default and needs no application."""
    CONCENTRATION = 'B.Tech with Concentration'
    MINOR = 'B.Tech with Minor'
    ADDITIONAL_INTERNSHIP = 'B.Tech with Additional Internship'


class ProgramStatus(str, enum.Enum):
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'


# A student holds at most one PENDING or APPROVED program
ACTIVE_PROGRAM_STATUSES = (ProgramStatus.PENDING, ProgramStatus.APPROVED)


class StudentProgram(db.Model):
    __tablename__ = 'student_programs'
    __table_args__ = (
        Index('uq_student_programs_one_active', 'student_id', unique=True,
              postgresql_where=text("status IN ('PENDING', 'APPROVED')"),
              sqlite_where=text("status IN ('PENDING', 'APPROVED')")),
    )

    id = Column('program_id', Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False, index=True)
    program_type = Column(
        db.Enum(ProgramType, name='program_type', values_callable=lambda enum: [p.value for p in enum]),
        nullable=False,
    )
    target_branch = Column(String(100), nullable=True)  # minors only
    semester = Column(String(10), nullable=True)  # additional internship only
    status = Column(
        db.Enum(ProgramStatus, name='program_status', values_callable=lambda enum: [s.value for s in enum]),
        nullable=False,
        default=ProgramStatus.PENDING,
    )
    applied_at = Column(DateTime, default=local_now_naive)
    decided_at = Column(DateTime, nullable=True)
    decided_by = Column(Integer, ForeignKey('users.user_id', ondelete='SET NULL'), nullable=True)

    student = db.relationship('User', foreign_keys=[student_id],
                              backref=db.backref('programs', cascade='all, delete-orphan'))

    def __repr__(self):
        return f'<StudentProgram {self.id}: {self.program_type.value} [{self.status.value}]>'

    def to_dict(self, include_student=False):
        data = {
            'program_id': self.id,
            'student_id': self.student_id,
            'program_type': self.program_type.value,
            'target_branch': self.target_branch,
            'semester': self.semester,
            'status': self.status.value,
            'applied_at': self.applied_at.isoformat() if self.applied_at else None,
            'decided_at': self.decided_at.isoformat() if self.decided_at else None,
        }
        if include_student and self.student:
            data['student'] = {
                'user_id': self.student.id,
                'full_name': self.student.full_name,
                'email': self.student.email,
                'department': self.student.department,
            }
        return data
