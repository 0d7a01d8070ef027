import enum
from extensions import db
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Table
from utils.timezone import local_now_naive


class CourseStatus(str, enum.Enum):
    PENDING_ADVISOR_APPROVAL = 'PENDING_ADVISOR_APPROVAL'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'

    @property
    def is_terminal(self):
        return self is not CourseStatus.PENDING_ADVISOR_APPROVAL


# Teaching instructors besides the coordinator (courses.created_by)
course_co_instructors = Table(
    'course_co_instructors',
    db.metadata,
    Column('course_id', Integer, ForeignKey('courses.course_id', ondelete='CASCADE'), primary_key=True),
    Column('instructor_id', Integer, ForeignKey('users.user_id', ondelete='CASCADE'), primary_key=True),
)


class Course(db.Model):
    __tablename__ = 'courses'
    __table_args__ = (
        CheckConstraint('capacity >= 0', name='ck_courses_capacity_nonnegative'),
        CheckConstraint('enrolled_count >= 0', name='ck_courses_enrolled_nonnegative'),
    )

    id = Column('course_id', Integer, primary_key=True)
    course_code = Column(String(20), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    department = Column(String(50), nullable=True)
    acad_session = Column(String(20), nullable=True)  # e.g. '2025-II'
    credits = Column(Integer, nullable=False, default=0)
    slot = Column(String(10), nullable=True)
    capacity = Column(Integer, nullable=False, default=0)
    # Only written through utils.seat_counter
    enrolled_count = Column(Integer, nullable=False, default=0)
    status = Column(
        db.Enum(CourseStatus, name='course_status', values_callable=lambda enum: [s.value for s in enum]),
        nullable=False,
        default=CourseStatus.PENDING_ADVISOR_APPROVAL,
    )
    created_by = Column(Integer, ForeignKey('users.user_id'), nullable=False)
    advisor_id = Column(Integer, ForeignKey('users.user_id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=local_now_naive)

    instructor = db.relationship('User', foreign_keys=[created_by], backref='floated_courses')
    advisor = db.relationship('User', foreign_keys=[advisor_id])
    co_instructors = db.relationship('User', secondary=course_co_instructors, order_by='User.id',
                                     backref='co_taught_courses')

    def __repr__(self):
        return f'<Course {self.id}: {self.course_code} ({self.status.value if self.status else "?"})>'

    @property
    def seats_left(self):
        return max((self.capacity or 0) - (self.enrolled_count or 0), 0)

    def is_coordinator(self, user):
        return user is not None and self.created_by == user.id

    def is_taught_by(self, user):
        if user is None:
            return False
        return self.created_by == user.id or any(i.id == user.id for i in self.co_instructors)

    @property
    def available_actions(self):
        """Advisor actions still permitted; empty once the offering is finalized."""
        if self.status is None or self.status.is_terminal:
            return []
        return ['APPROVE', 'REJECT']

    def to_dict(self):
        return {
            'course_id': self.id,
            'course_code': self.course_code,
            'title': self.title,
            'department': self.department,
            'acad_session': self.acad_session,
            'credits': self.credits,
            'slot': self.slot,
            'capacity': self.capacity,
            'enrolled_count': self.enrolled_count,
            'status': self.status.value,
            'created_by': self.created_by,
            'coordinator_id': self.created_by,
            'co_instructors': [{'user_id': i.id, 'full_name': i.full_name} for i in self.co_instructors],
            'advisor_id': self.advisor_id,
            'available_actions': self.available_actions,
            'instructor': {
                'full_name': self.instructor.full_name,
                'email': self.instructor.email,
            } if self.instructor else None,
        }
