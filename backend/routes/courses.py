from flask import Blueprint, jsonify, request
from flask_login import login_required
from models import CourseStatus
from utils.course_manager import CourseManager, get_course
courses_bp = Blueprint('courses', __name__, url_prefix='/api/courses')


@courses_bp.route('/search', methods=['GET'])
@login_required
def search_courses():
    status = request.args.get('status')
    try:
        status = CourseStatus(status.upper()) if status else CourseStatus.APPROVED
    except ValueError:
        return (jsonify({'error': f'Unknown course status "{status}"'}), 400)
    courses = CourseManager.search(
        code=request.args.get('code'),
        title=request.args.get('title'),
        department=request.args.get('dept') or request.args.get('department'),
        acad_session=request.args.get('session'),
        instructor=request.args.get('instructor'),
        status=status,
    )
    return jsonify([course.to_dict() for course in courses])


@courses_bp.route('/<int:course_id>', methods=['GET'])
@login_required
def course_detail(course_id):
    return jsonify(get_course(course_id).to_dict())


@courses_bp.route('/<int:course_id>/members', methods=['GET'])
@login_required
def course_members(course_id):
    roster = CourseManager.enrolled_roster(course_id)
    return jsonify([e.to_dict(include_student=True) for e in roster])
