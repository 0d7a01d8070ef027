"""Anonymous course and instructor feedback from enrolled students."""
import logging
from flask import current_app
from sqlalchemy.exc import IntegrityError
from extensions import db
from exceptions import Forbidden, DuplicateApplication
from models import User, Course, Enrollment, EnrollmentStatus, CourseFeedback, FeedbackType, ANSWER_KEYS
from utils.course_manager import get_course

logger = logging.getLogger(__name__)


class FeedbackManager:

    @staticmethod
    def options(student: User):
        """One entry per (enrolled course, teaching instructor) in the current session."""
        session = current_app.config.get('CURRENT_ACAD_SESSION')
        enrollments = (Enrollment.query.join(Course, Enrollment.course_id == Course.id)
                       .filter(Enrollment.student_id == student.id,
                               Enrollment.status == EnrollmentStatus.ENROLLED,
                               Course.acad_session == session)
                       .order_by(Course.course_code).all())
        options = []
        for enrollment in enrollments:
            course = enrollment.course
            for instructor in [course.instructor] + list(course.co_instructors):
                options.append({
                    'course_id': course.id,
                    'course_code': course.course_code,
                    'title': course.title,
                    'acad_session': course.acad_session,
                    'instructor_id': instructor.id,
                    'instructor_name': instructor.full_name,
                })
        return options

    @staticmethod
    def submit(student: User, data) -> CourseFeedback:
        course = get_course(data['course_id'])
        enrolled = Enrollment.query.filter_by(student_id=student.id, course_id=course.id,
                                              status=EnrollmentStatus.ENROLLED).first()
        instructor = db.session.get(User, data['instructor_id'])
        if enrolled is None or not course.is_taught_by(instructor):
            raise Forbidden('Invalid.')

        feedback_type = FeedbackType(data['feedback_type'])
        existing = CourseFeedback.query.filter_by(student_id=student.id, course_id=course.id,
                                                  instructor_id=instructor.id, feedback_type=feedback_type).first()
        if existing is not None:
            raise DuplicateApplication('Already submitted.')

        feedback = CourseFeedback(
            student_id=student.id,
            course_id=course.id,
            instructor_id=instructor.id,
            feedback_type=feedback_type,
            q11=(data.get('q11') or '').strip() or None,
            **{key: data[key].strip() for key in ANSWER_KEYS},
        )
        db.session.add(feedback)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateApplication('Already submitted.')
        logger.info('%s feedback %s recorded for course %s instructor %s', feedback_type.value, feedback.id,
                    course.id, instructor.id)
        return feedback

    @staticmethod
    def for_instructor(instructor: User, course_id=None, feedback_type=None):
        query = CourseFeedback.query.filter(CourseFeedback.instructor_id == instructor.id)
        if course_id is not None:
            query = query.filter(CourseFeedback.course_id == course_id)
        if feedback_type is not None:
            query = query.filter(CourseFeedback.feedback_type == feedback_type)
        return query.order_by(CourseFeedback.course_id, CourseFeedback.id).all()
