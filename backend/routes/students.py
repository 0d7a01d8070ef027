from flask import Blueprint, jsonify, request
from flask_login import current_user
from decorators import student_required
from forms import bind, FeedbackForm, ProgramForm
from utils.enrollment_manager import EnrollmentManager, RecordsManager
from utils.feedback_manager import FeedbackManager
from utils.program_manager import ProgramManager
from utils.request_helpers import get_payload, require_int, check_acting_user
students_bp = Blueprint('students', __name__, url_prefix='/api/student')


@students_bp.route('/apply', methods=['POST'])
@student_required
def apply():
    payload = get_payload()
    check_acting_user(payload, 'student_id', 'studentId')
    course_id = require_int(payload, 'course_id', 'courseId')
    enrollment, reapplied = EnrollmentManager.apply(current_user, course_id)
    message = 'Re-applied successfully' if reapplied else 'Application submitted successfully'
    return (jsonify({'message': message, 'enrollment': enrollment.to_dict(include_course=True)}), 201)


@students_bp.route('/drop', methods=['POST'])
@student_required
def drop():
    payload = get_payload()
    check_acting_user(payload, 'student_id', 'studentId')
    enrollment_id = require_int(payload, 'enrollment_id', 'enrollmentId')
    enrollment = EnrollmentManager.drop(current_user, enrollment_id)
    return jsonify({'message': 'Course dropped successfully.', 'enrollment': enrollment.to_dict()})


@students_bp.route('/records', methods=['GET'])
@student_required
def records():
    session = request.args.get('session')
    if not session:
        return (jsonify({'error': 'Session is required.'}), 400)
    return jsonify(RecordsManager.session_records(current_user, session))


@students_bp.route('/all-records', methods=['GET'])
@student_required
def all_records():
    return jsonify(RecordsManager.all_records(current_user))


@students_bp.route('/feedback/options', methods=['GET'])
@student_required
def feedback_options():
    return jsonify(FeedbackManager.options(current_user))


@students_bp.route('/feedback/submit', methods=['POST'])
@student_required
def submit_feedback():
    payload = get_payload()
    check_acting_user(payload, 'student_id', 'studentId')
    form = bind(FeedbackForm, payload)
    feedback = FeedbackManager.submit(current_user, form.data)
    return (jsonify({'message': 'Feedback submitted.', 'feedback_id': feedback.id}), 201)


@students_bp.route('/apply-program', methods=['POST'])
@student_required
def apply_program():
    payload = get_payload()
    check_acting_user(payload, 'student_id', 'studentId')
    form = bind(ProgramForm, payload)
    program = ProgramManager.apply(current_user, form.data)
    return (jsonify({'message': 'Application submitted successfully.', 'program': program.to_dict()}), 201)


@students_bp.route('/my-programs', methods=['GET'])
@student_required
def my_programs():
    return jsonify([program.to_dict() for program in ProgramManager.for_student(current_user)])


@students_bp.route('/drop-program', methods=['POST'])
@student_required
def drop_program():
    payload = get_payload()
    check_acting_user(payload, 'student_id', 'studentId')
    program_id = require_int(payload, 'program_id', 'programId')
    program = ProgramManager.drop(current_user, program_id)
    return jsonify({'message': 'Application dropped. Reverted to General B.Tech.', 'program': program.to_dict()})
