from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user
from decorators import admin_required
from models import Role, AccountStatus
from utils.account_manager import AccountManager
from utils.course_manager import CourseManager
from utils.enrollment_manager import EnrollmentManager
from utils.program_manager import ProgramManager
from utils.request_helpers import get_payload, payload_value, require_value, require_int
from utils.system_settings_helper import all_flags, set_flag, COURSE_REGISTRATION, GRADE_SUBMISSION
admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


@admin_bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    status = request.args.get('status')
    role = request.args.get('role')
    try:
        status = AccountStatus(status.upper()) if status else None
    except ValueError:
        return (jsonify({'error': f'Unknown account status "{status}"'}), 400)
    users = AccountManager.list_users(status=status, role=Role.parse(role) if role else None)
    return jsonify([user.to_dict() for user in users])


@admin_bp.route('/user-status', methods=['POST'])
@admin_required
def user_status():
    payload = get_payload()
    user_id = require_int(payload, 'user_id', 'userId')
    action = require_value(payload, 'action')
    user = AccountManager.set_status(current_user, user_id, action)
    return jsonify({'message': f'User {user.account_status.value.lower()}', 'user': user.to_dict()})


@admin_bp.route('/delete-user', methods=['POST'])
@admin_required
def delete_user():
    user_id = require_int(get_payload(), 'user_id', 'userId')
    AccountManager.delete_user(current_user, user_id)
    return jsonify({'message': 'User deleted'})


@admin_bp.route('/courses', methods=['GET'])
@admin_required
def all_courses():
    return jsonify([course.to_dict() for course in CourseManager.search(status=None)])


@admin_bp.route('/system-settings', methods=['GET'])
@admin_required
def system_settings():
    return jsonify(all_flags())


def _toggle(key):
    is_open = payload_value(get_payload(), 'is_open', 'isOpen')
    if not isinstance(is_open, bool):
        return (jsonify({'error': 'is_open must be true or false'}), 400)
    set_flag(key, is_open)
    current_app.logger.info('Admin %s set %s to %s', current_user.id, key, 'OPEN' if is_open else 'CLOSED')
    return jsonify(all_flags())


@admin_bp.route('/toggle-registration', methods=['POST'])
@admin_required
def toggle_registration():
    return _toggle(COURSE_REGISTRATION)


@admin_bp.route('/toggle-grading', methods=['POST'])
@admin_required
def toggle_grading():
    return _toggle(GRADE_SUBMISSION)


@admin_bp.route('/reset-enrollments', methods=['DELETE'])
@admin_required
def reset_enrollments():
    deleted = EnrollmentManager.reset_all()
    return jsonify({'message': 'All enrollments reset', 'deleted': deleted})


@admin_bp.route('/program-requests', methods=['GET'])
@admin_required
def program_requests():
    return jsonify([program.to_dict(include_student=True) for program in ProgramManager.pending_requests()])


@admin_bp.route('/update-program-status', methods=['POST'])
@admin_required
def update_program_status():
    payload = get_payload()
    program_id = require_int(payload, 'program_id', 'programId')
    action = require_value(payload, 'action')
    program = ProgramManager.decide(current_user, program_id, action)
    return jsonify({'message': f'Application {program.status.value}.', 'program': program.to_dict()})
