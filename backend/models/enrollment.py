import enum
from extensions import db
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from utils.timezone import local_now_naive


class EnrollmentStatus(str, enum.Enum):
    PENDING_INSTRUCTOR_APPROVAL = 'PENDING_INSTRUCTOR_APPROVAL'
    PENDING_ADVISOR_APPROVAL = 'PENDING_ADVISOR_APPROVAL'
    ENROLLED = 'ENROLLED'
    INSTRUCTOR_REJECTED = 'INSTRUCTOR_REJECTED'
    ADVISOR_REJECTED = 'ADVISOR_REJECTED'
    DROPPED_BY_STUDENT = 'DROPPED_BY_STUDENT'


PENDING_STATUSES = (
    EnrollmentStatus.PENDING_INSTRUCTOR_APPROVAL,
    EnrollmentStatus.PENDING_ADVISOR_APPROVAL,
)
# Statuses that hold the (student, course) pair
ACTIVE_STATUSES = PENDING_STATUSES + (EnrollmentStatus.ENROLLED,)
# Statuses from which a student may apply again
REAPPLY_STATUSES = (
    EnrollmentStatus.DROPPED_BY_STUDENT,
    EnrollmentStatus.INSTRUCTOR_REJECTED,
    EnrollmentStatus.ADVISOR_REJECTED,
)

GRADE_SCHEME = ('A', 'A-', 'B', 'B-', 'C', 'C-', 'D', 'E', 'F', 'NP', 'NF', 'I', 'W', 'S', 'U')

# None means the grade carries no points and is left out of SGPA/CGPA
GRADE_POINTS = {
    'A': 10, 'A-': 9, 'B': 8, 'B-': 7, 'C': 6, 'C-': 5, 'D': 4, 'E': 2, 'F': 0,
    'NP': None, 'NF': None, 'I': None, 'W': None, 'S': None, 'U': None,
}

# Grades that do not earn the course credits
NON_EARNING_GRADES = ('F', 'NF', 'I', 'W')


class Enrollment(db.Model):
    __tablename__ = 'enrollments'
    __table_args__ = (
        UniqueConstraint('student_id', 'course_id', name='uq_enrollments_student_course'),
    )

    id = Column('enrollment_id', Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey('courses.course_id', ondelete='CASCADE'), nullable=False, index=True)
    status = Column(
        db.Enum(EnrollmentStatus, name='enrollment_status', values_callable=lambda enum: [s.value for s in enum]),
        nullable=False,
        default=EnrollmentStatus.PENDING_INSTRUCTOR_APPROVAL,
    )
    grade = Column(String(3), nullable=True)
    created_at = Column(DateTime, default=local_now_naive)
    updated_at = Column(DateTime, default=local_now_naive, onupdate=local_now_naive)

    # Relationships
    student = db.relationship('User', backref=db.backref('enrollments', cascade='all, delete-orphan'))
    course = db.relationship('Course', backref=db.backref('enrollments', cascade='all, delete-orphan'))

    def __repr__(self):
        return f'<Enrollment {self.id}: student {self.student_id} in course {self.course_id} [{self.status.value}]>'

    @property
    def enrollment_id(self):
        return self.id

    @property
    def is_graded(self):
        return self.grade is not None

    def to_dict(self, include_course=False, include_student=False):
        data = {
            'enrollment_id': self.id,
            'student_id': self.student_id,
            'course_id': self.course_id,
            'status': self.status.value,
            'grade': self.grade,
        }
        if include_course and self.course:
            data['courses'] = {
                'course_id': self.course.id,
                'course_code': self.course.course_code,
                'title': self.course.title,
                'acad_session': self.course.acad_session,
                'credits': self.course.credits,
                'slot': self.course.slot,
            }
        if include_student and self.student:
            data['student'] = {
                'user_id': self.student.id,
                'full_name': self.student.full_name,
                'email': self.student.email,
                'department': self.student.department,
                'batch': self.student.batch,
                'entry_no': self.student.entry_no,
            }
        return data
