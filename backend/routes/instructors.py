import csv
import io
from flask import Blueprint, jsonify, request, Response
from flask_login import current_user
from decorators import instructor_required
from forms import bind, FloatCourseForm
from utils.course_manager import CourseManager
from models import FeedbackType
from utils.enrollment_manager import EnrollmentManager, GradeManager
from utils.feedback_manager import FeedbackManager
from utils.request_helpers import get_payload, payload_value, require_value, require_int, check_acting_user
instructors_bp = Blueprint('instructors', __name__, url_prefix='/api/instructor')


@instructors_bp.route('/float-course', methods=['POST'])
@instructor_required
def float_course():
    payload = get_payload()
    check_acting_user(payload, 'instructor_id', 'instructorId')
    form = bind(FloatCourseForm, payload)
    course = CourseManager.float_course(current_user, form.data, payload.get('co_instructors'))
    return (jsonify({'message': 'Course floated and sent for advisor approval.', 'course': course.to_dict()}), 201)


@instructors_bp.route('/courses', methods=['GET'])
@instructor_required
def my_courses():
    return jsonify([course.to_dict() for course in CourseManager.courses_for_instructor(current_user)])


@instructors_bp.route('/applications', methods=['GET'])
@instructor_required
def course_applications():
    course_id = request.args.get('course_id', type=int)
    if course_id is None:
        return (jsonify({'error': 'course_id is required'}), 400)
    enrollments = EnrollmentManager.applications_for_course(current_user, course_id)
    return jsonify([e.to_dict(include_student=True) for e in enrollments])


@instructors_bp.route('/course-students/<int:course_id>', methods=['GET'])
@instructor_required
def course_students(course_id):
    enrollments = EnrollmentManager.enrolled_students(current_user, course_id)
    if request.args.get('format') != 'csv':
        return jsonify([e.to_dict(include_student=True) for e in enrollments])
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(['email', 'name', 'entry_no', 'grade'])
    for enrollment in enrollments:
        student = enrollment.student
        writer.writerow([student.email, student.full_name, student.entry_no or '', enrollment.grade or ''])
    return Response(output.getvalue(), mimetype='text/csv',
                    headers={'Content-Disposition': f'attachment; filename=course_{course_id}_students.csv'})


@instructors_bp.route('/approve-request', methods=['POST'])
@instructors_bp.route('/approve-student', methods=['POST'], endpoint='approve_student')
@instructor_required
def approve_request():
    payload = get_payload()
    check_acting_user(payload, 'instructor_id', 'instructorId')
    enrollment_id = require_int(payload, 'enrollment_id', 'enrollmentId')
    action = require_value(payload, 'action')
    enrollment = EnrollmentManager.instructor_decide(current_user, enrollment_id, action)
    return jsonify({'message': f'Enrollment is now {enrollment.status.value}', 'enrollment': enrollment.to_dict()})


@instructors_bp.route('/award-grade', methods=['POST'])
@instructor_required
def award_grade():
    payload = get_payload()
    check_acting_user(payload, 'instructor_id', 'instructorId')
    enrollment_id = require_int(payload, 'enrollment_id', 'enrollmentId')
    enrollment = GradeManager.award_grade(current_user, enrollment_id, payload_value(payload, 'grade'))
    return jsonify({'message': 'Grade awarded', 'enrollment': enrollment.to_dict()})


@instructors_bp.route('/validate-grades-csv', methods=['POST'])
@instructors_bp.route('/validate-grades', methods=['POST'], endpoint='validate_grades')
@instructor_required
def validate_grades_csv():
    payload = get_payload()
    check_acting_user(payload, 'instructor_id', 'instructorId')
    course_id = require_int(payload, 'course_id', 'courseId')
    rows = next((payload[key] for key in ('data', 'rows', 'csv') if payload.get(key) is not None), None)
    return jsonify(GradeManager.validate_rows(current_user, course_id, rows, payload.get('valid_grades')))


@instructors_bp.route('/submit-mass-grades', methods=['POST'])
@instructor_required
def submit_mass_grades():
    payload = get_payload()
    check_acting_user(payload, 'instructor_id', 'instructorId')
    course_id = require_int(payload, 'course_id', 'courseId')
    count = GradeManager.submit_mass_grades(current_user, course_id, payload.get('grades'),
                                            confirm=payload.get('confirm') is True)
    return jsonify({'message': f'Successfully submitted {count} grades', 'count': count})


@instructors_bp.route('/feedback', methods=['GET'])
@instructor_required
def feedback():
    course_id = request.args.get('course_id', type=int)
    feedback_type = request.args.get('feedback_type')
    try:
        feedback_type = FeedbackType(feedback_type) if feedback_type else None
    except ValueError:
        return (jsonify({'error': f'Unknown feedback type "{feedback_type}"'}), 400)
    entries = FeedbackManager.for_instructor(current_user, course_id, feedback_type)
    return jsonify([entry.to_dict() for entry in entries])
