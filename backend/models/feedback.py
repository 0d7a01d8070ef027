import enum
from extensions import db
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from utils.timezone import local_now_naive


class FeedbackType(str, enum.Enum):
    MID_SEM = 'Mid-sem'
    END_SEM = 'End-sem'


# q1..q10 are mandatory rated answers, q11 is free-text comments
ANSWER_KEYS = tuple(f'q{n}' for n in range(1, 11))


class CourseFeedback(db.Model):
    __tablename__ = 'course_instructor_feedback'
    __table_args__ = (
        UniqueConstraint('student_id', 'course_id', 'instructor_id', 'feedback_type',
                         name='uq_feedback_student_course_instructor_type'),
    )

    id = Column('feedback_id', Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False)
    course_id = Column(Integer, ForeignKey('courses.course_id', ondelete='CASCADE'), nullable=False, index=True)
    instructor_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False, index=True)
    feedback_type = Column(
        db.Enum(FeedbackType, name='feedback_type', values_callable=lambda enum: [t.value for t in enum]),
        nullable=False,
    )
    q1 = Column(String(50), nullable=False)
    q2 = Column(String(50), nullable=False)
    q3 = Column(String(50), nullable=False)
    q4 = Column(String(50), nullable=False)
    q5 = Column(String(50), nullable=False)
    q6 = Column(String(50), nullable=False)
    q7 = Column(String(50), nullable=False)
    q8 = Column(String(50), nullable=False)
    q9 = Column(String(50), nullable=False)
    q10 = Column(String(50), nullable=False)
    q11 = Column(Text, nullable=True)
    created_at = Column(DateTime, default=local_now_naive)

    course = db.relationship('Course')

    def __repr__(self):
        return f'<CourseFeedback {self.id}: course {self.course_id} instructor {self.instructor_id}>'

    def to_dict(self):
        """Instructor-facing view; the submitting student is not disclosed."""
        data = {
            'feedback_id': self.id,
            'course_id': self.course_id,
            'instructor_id': self.instructor_id,
            'feedback_type': self.feedback_type.value,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'course': {
                'course_code': self.course.course_code,
                'title': self.course.title,
            } if self.course else None,
        }
        for key in ANSWER_KEYS + ('q11',):
            data[key] = getattr(self, key)
        return data
