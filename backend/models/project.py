import enum
from extensions import db
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from utils.timezone import local_now_naive


class StudentMode(str, enum.Enum):
    """How a project takes students.

    LIMITED_SLOTS carries its remaining count in ``Project.student_slots``;
    OPEN is unlimited and never consults the counter.
    """
    NO_STUDENTS = 'NO_STUDENTS'
    LIMITED_SLOTS = 'LIMITED_SLOTS'
    OPEN = 'OPEN'


class ProjectVisibility(str, enum.Enum):
    PRIVATE = 'PRIVATE'
    INSTITUTE_PUBLIC = 'INSTITUTE_PUBLIC'


class ProjectStatus(str, enum.Enum):
    ACTIVE = 'ACTIVE'
    CLOSED = 'CLOSED'


class RequestStatus(str, enum.Enum):
    PENDING = 'PENDING'
    ACCEPTED = 'ACCEPTED'
    REJECTED = 'REJECTED'


def _values(enum_cls):
    return [member.value for member in enum_cls]


class Project(db.Model):
    __tablename__ = 'projects'
    __table_args__ = (
        CheckConstraint('student_slots IS NULL OR student_slots >= 0', name='ck_projects_slots_nonnegative'),
    )

    id = Column('project_id', Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    summary = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    domain = Column(String(100), nullable=False)
    visibility = Column(db.Enum(ProjectVisibility, name='project_visibility', values_callable=_values),
                        nullable=False, default=ProjectVisibility.PRIVATE)
    status = Column(db.Enum(ProjectStatus, name='project_status', values_callable=_values),
                    nullable=False, default=ProjectStatus.ACTIVE)
    student_mode = Column(db.Enum(StudentMode, name='student_mode', values_callable=_values),
                          nullable=False, default=StudentMode.NO_STUDENTS)
    # Remaining capacity; only set for LIMITED_SLOTS, written through utils.seat_counter
    student_slots = Column(Integer, nullable=True)
    required_skills = Column(Text, nullable=True)
    preferred_background = Column(Text, nullable=True)
    expected_outcomes = Column(Text, nullable=True)
    duration = Column(String(50), nullable=True)
    weekly_commitment = Column(String(50), nullable=True)
    created_by = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False, index=True)
    created_at = Column(DateTime, default=local_now_naive)

    instructor = db.relationship('User', backref=db.backref('projects', cascade='all, delete-orphan'))
    requests = db.relationship('ProjectRequest', back_populates='project', cascade='all, delete-orphan')
    members = db.relationship('ProjectMember', back_populates='project', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Project {self.id}: {self.title}>'

    @property
    def accepts_students(self):
        return self.student_mode is not StudentMode.NO_STUDENTS

    @property
    def has_open_slot(self):
        if self.student_mode is StudentMode.OPEN:
            return True
        if self.student_mode is StudentMode.LIMITED_SLOTS:
            return (self.student_slots or 0) > 0
        return False

    def to_dict(self):
        return {
            'project_id': self.id,
            'title': self.title,
            'summary': self.summary,
            'description': self.description,
            'domain': self.domain,
            'visibility': self.visibility.value,
            'status': self.status.value,
            'student_mode': self.student_mode.value,
            'student_slots': self.student_slots,
            'required_skills': self.required_skills,
            'preferred_background': self.preferred_background,
            'expected_outcomes': self.expected_outcomes,
            'duration': self.duration,
            'weekly_commitment': self.weekly_commitment,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'instructor': {
                'full_name': self.instructor.full_name,
                'department': self.instructor.department,
            } if self.instructor else None,
        }


class ProjectRequest(db.Model):
    __tablename__ = 'project_requests'
    __table_args__ = (
        UniqueConstraint('project_id', 'student_id', name='uq_project_requests_project_student'),
    )

    id = Column('request_id', Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey('projects.project_id', ondelete='CASCADE'), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False, index=True)
    message = Column(Text, nullable=True)
    status = Column(db.Enum(RequestStatus, name='project_request_status', values_callable=_values),
                    nullable=False, default=RequestStatus.PENDING)
    created_at = Column(DateTime, default=local_now_naive)

    project = db.relationship('Project', back_populates='requests')
    student = db.relationship('User', backref=db.backref('project_requests', cascade='all, delete-orphan'))

    def to_dict(self):
        return {
            'request_id': self.id,
            'project_id': self.project_id,
            'status': self.status.value,
            'message': self.message,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'student': {
                'user_id': self.student.id,
                'full_name': self.student.full_name,
                'email': self.student.email,
                'department': self.student.department,
            } if self.student else None,
        }


class ProjectMember(db.Model):
    __tablename__ = 'project_members'

    # Composite key makes a second insert for the same pair fail at the store
    project_id = Column(Integer, ForeignKey('projects.project_id', ondelete='CASCADE'), primary_key=True)
    student_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), primary_key=True)
    joined_at = Column(DateTime, default=local_now_naive)

    project = db.relationship('Project', back_populates='members')
    student = db.relationship('User', backref=db.backref('project_memberships', cascade='all, delete-orphan'))
