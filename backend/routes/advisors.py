from flask import Blueprint, jsonify, request
from flask_login import current_user
from decorators import advisor_required, course_approver_required
from exceptions import Forbidden, NotFound
from extensions import db
from models import User, Role
from utils.course_manager import CourseManager
from utils.enrollment_manager import EnrollmentManager
from utils.request_helpers import get_payload, require_value, require_int, check_acting_user
advisors_bp = Blueprint('advisors', __name__, url_prefix='/api/advisor')


@advisors_bp.route('/pending-courses', methods=['GET'])
@course_approver_required
def pending_courses():
    return jsonify([course.to_dict() for course in CourseManager.pending_for(current_user)])


@advisors_bp.route('/approve-course', methods=['POST'])
@course_approver_required
def approve_course():
    payload = get_payload()
    check_acting_user(payload, 'advisor_id', 'advisorId')
    course_id = require_int(payload, 'course_id', 'courseId')
    action = require_value(payload, 'action')
    course = CourseManager.decide(current_user, course_id, action)
    return jsonify({'message': f'Course {course.status.value.lower()}', 'course': course.to_dict()})


@advisors_bp.route('/student-courses', methods=['GET'])
@advisor_required
def student_courses():
    """Courses that have advisees waiting on this advisor."""
    courses = {}
    for enrollment in EnrollmentManager.pending_for_advisor(current_user):
        entry = courses.setdefault(enrollment.course_id, dict(enrollment.course.to_dict(), pending_count=0))
        entry['pending_count'] += 1
    return jsonify(list(courses.values()))


@advisors_bp.route('/course-students', methods=['GET'])
@advisor_required
def course_students():
    course_id = request.args.get('course_id', type=int)
    enrollments = EnrollmentManager.pending_for_advisor(current_user, course_id)
    return jsonify([e.to_dict(include_course=True, include_student=True) for e in enrollments])


@advisors_bp.route('/advisees', methods=['GET'])
@advisor_required
def advisees():
    return jsonify([student.to_dict() for student in current_user.advisees])


@advisors_bp.route('/all-students', methods=['GET'])
@advisor_required
def all_students():
    students = [user for user in current_user.advisees if user.role == Role.STUDENT]
    return jsonify([student.to_dict() for student in sorted(students, key=lambda user: user.id)])


@advisors_bp.route('/approve-request', methods=['POST'])
@advisors_bp.route('/approve-student', methods=['POST'], endpoint='approve_student')
@advisor_required
def approve_request():
    payload = get_payload()
    check_acting_user(payload, 'advisor_id', 'advisorId')
    enrollment_id = require_int(payload, 'enrollment_id', 'enrollmentId')
    action = require_value(payload, 'action')
    enrollment = EnrollmentManager.advisor_decide(current_user, enrollment_id, action)
    return jsonify({'message': f'Enrollment is now {enrollment.status.value}', 'enrollment': enrollment.to_dict()})


@advisors_bp.route('/my-instructor-courses', methods=['GET'])
@advisor_required
def my_instructor_courses():
    return jsonify([course.to_dict() for course in CourseManager.courses_for_advisor(current_user)])


@advisors_bp.route('/student-details', methods=['GET'])
@advisor_required
def student_details():
    student_id = request.args.get('student_id', type=int)
    if student_id is None:
        return (jsonify({'error': 'student_id is required'}), 400)
    student = db.session.get(User, student_id)
    if student is None or student.role != Role.STUDENT:
        raise NotFound('Student not found.')
    if student.advisor_id != current_user.id:
        raise Forbidden('Student is not assigned to you.')
    enrollments = EnrollmentManager.for_student(student)
    return jsonify({'student': student.to_dict(), 'courses': [e.to_dict(include_course=True) for e in enrollments]})
