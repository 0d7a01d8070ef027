from flask import Blueprint, jsonify, request
from flask_login import current_user
from decorators import instructor_required, student_required
from forms import bind, ProjectForm
from utils.project_manager import ProjectManager
from utils.request_helpers import get_payload, payload_value, require_value, require_int, check_acting_user
instructor_projects_bp = Blueprint('instructor_projects', __name__, url_prefix='/api/instructor/projects')
student_projects_bp = Blueprint('student_projects', __name__, url_prefix='/api/student/projects')


@instructor_projects_bp.route('', methods=['POST'])
@instructor_required
def create_project():
    payload = get_payload()
    check_acting_user(payload, 'instructor_id', 'instructorId')
    form = bind(ProjectForm, payload)
    project = ProjectManager.create(current_user, form.data)
    return (jsonify(project.to_dict()), 201)


@instructor_projects_bp.route('', methods=['GET'])
@instructor_required
def my_projects():
    return jsonify([project.to_dict() for project in ProjectManager.for_instructor(current_user)])


@instructor_projects_bp.route('/requests', methods=['GET'])
@instructor_required
def project_requests():
    project_id = request.args.get('project_id', type=int)
    if project_id is None:
        return (jsonify({'error': 'project_id is required'}), 400)
    return jsonify([r.to_dict() for r in ProjectManager.pending_requests(current_user, project_id)])


@instructor_projects_bp.route('/respond', methods=['POST'])
@instructor_required
def respond_request():
    payload = get_payload()
    check_acting_user(payload, 'instructor_id', 'instructorId')
    request_id = require_int(payload, 'request_id', 'requestId')
    action = require_value(payload, 'action')
    join_request = ProjectManager.respond(current_user, request_id, action)
    return jsonify({'message': f'Request {join_request.status.value.lower()}', 'request': join_request.to_dict()})


@student_projects_bp.route('/browse', methods=['GET'])
@student_required
def browse_projects():
    return jsonify(ProjectManager.browse(current_user))


@student_projects_bp.route('/request', methods=['POST'])
@student_required
def request_to_join():
    payload = get_payload()
    check_acting_user(payload, 'student_id', 'studentId')
    project_id = require_int(payload, 'project_id', 'projectId')
    join_request = ProjectManager.request_to_join(current_user, project_id, payload_value(payload, 'message'))
    return (jsonify({'message': 'Request sent', 'request': join_request.to_dict()}), 201)
