"""Instructor research projects and student join requests."""
import logging
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from extensions import db
from exceptions import (AimsError, NotFound, Forbidden, ValidationError, InvalidTransition,
                        DuplicateApplication, NoSlotsAvailable, ProjectClosed)
from models import (User, Project, ProjectRequest, ProjectMember, StudentMode, ProjectVisibility,
                    ProjectStatus, RequestStatus)
from utils.seat_counter import claim_project_slot

logger = logging.getLogger(__name__)

PROJECT_FIELDS = ('title', 'summary', 'description', 'domain', 'required_skills', 'preferred_background',
                  'expected_outcomes', 'duration', 'weekly_commitment')
STUDENT_FACING_FIELDS = ('required_skills', 'preferred_background', 'weekly_commitment')


def get_project(project_id):
    project = db.session.get(Project, project_id) if project_id is not None else None
    if project is None:
        raise NotFound('Project not found.')
    return project


def _add_member(project_id, student_id):
    """Insert the membership unless it already exists. Returns True if inserted."""
    if db.session.get(ProjectMember, (project_id, student_id)) is not None:
        return False
    try:
        with db.session.begin_nested():
            db.session.add(ProjectMember(project_id=project_id, student_id=student_id))
    except IntegrityError:
        return False
    return True


class ProjectManager:

    @staticmethod
    def create(instructor: User, data) -> Project:
        mode = StudentMode(data.get('student_mode') or StudentMode.NO_STUDENTS.value)
        slots = data.get('student_slots')
        if mode is StudentMode.LIMITED_SLOTS:
            if slots is None or int(slots) <= 0:
                raise ValidationError('Valid student_slots required for LIMITED_SLOTS mode.')
            slots = int(slots)
        else:
            slots = None
        fields = {field: data.get(field) or None for field in PROJECT_FIELDS}
        if mode is StudentMode.NO_STUDENTS:
            for field in STUDENT_FACING_FIELDS:
                fields[field] = None

        project = Project(
            created_by=instructor.id,
            visibility=ProjectVisibility(data.get('visibility') or ProjectVisibility.PRIVATE.value),
            status=ProjectStatus.ACTIVE,
            student_mode=mode,
            student_slots=slots,
            **fields,
        )
        db.session.add(project)
        db.session.commit()
        logger.info('Project %s created by instructor %s (%s)', project.id, instructor.id, mode.value)
        return project

    @staticmethod
    def for_instructor(instructor: User):
        return Project.query.filter_by(created_by=instructor.id).order_by(Project.created_at.desc()).all()

    @staticmethod
    def owned(instructor: User, project_id) -> Project:
        project = get_project(project_id)
        if project.created_by != instructor.id:
            raise Forbidden('Unauthorized')
        return project

    @staticmethod
    def pending_requests(instructor: User, project_id):
        project = ProjectManager.owned(instructor, project_id)
        return (ProjectRequest.query.filter_by(project_id=project.id, status=RequestStatus.PENDING)
                .order_by(ProjectRequest.created_at.desc()).all())

    @staticmethod
    def browse(student: User):
        """Public active projects with the caller's request or membership state."""
        projects = (Project.query.filter(Project.visibility == ProjectVisibility.INSTITUTE_PUBLIC,
                                         Project.status == ProjectStatus.ACTIVE)
                    .order_by(Project.created_at.desc()).all())
        requests = {r.project_id: r.status.value for r in ProjectRequest.query.filter_by(student_id=student.id)}
        memberships = {m.project_id for m in ProjectMember.query.filter_by(student_id=student.id)}
        result = []
        for project in projects:
            data = project.to_dict()
            if project.id in memberships:
                data['my_status'] = RequestStatus.ACCEPTED.value
            else:
                data['my_status'] = requests.get(project.id)
            result.append(data)
        return result

    @staticmethod
    def request_to_join(student: User, project_id, message=None) -> ProjectRequest:
        project = get_project(project_id)
        if project.status != ProjectStatus.ACTIVE or not project.accepts_students:
            raise ProjectClosed('This project is not accepting students.')
        if not project.has_open_slot:
            raise NoSlotsAvailable('No slots available.')
        if db.session.get(ProjectMember, (project.id, student.id)) is not None:
            raise DuplicateApplication('You are already a member of this project.')
        if ProjectRequest.query.filter_by(project_id=project.id, student_id=student.id).first() is not None:
            raise DuplicateApplication('You have already requested to join this project.')

        join_request = ProjectRequest(project_id=project.id, student_id=student.id, message=message,
                                      status=RequestStatus.PENDING)
        db.session.add(join_request)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateApplication('You have already requested to join this project.')
        logger.info('Student %s requested to join project %s', student.id, project.id)
        return join_request

    @staticmethod
    def respond(instructor: User, request_id, action) -> ProjectRequest:
        """Accept or reject a pending join request.

        ACCEPT flips the request, inserts the membership if it is new and,
        for LIMITED_SLOTS projects, takes one slot for a new member. All three
        commit together or not at all.
        """
        action = str(action or '').strip().upper()
        if action not in ('ACCEPT', 'REJECT'):
            raise ValidationError('Invalid action. Expected ACCEPT or REJECT.')
        join_request = db.session.get(ProjectRequest, request_id) if request_id is not None else None
        if join_request is None:
            raise NotFound('Request not found.')
        project = join_request.project
        if project.created_by != instructor.id:
            raise Forbidden('Unauthorized')
        if join_request.status != RequestStatus.PENDING:
            raise InvalidTransition('Request already processed.')
        if action == 'ACCEPT' and not project.accepts_students:
            raise ProjectClosed('This project is not accepting students.')

        new_status = RequestStatus.ACCEPTED if action == 'ACCEPT' else RequestStatus.REJECTED
        try:
            changed = db.session.execute(
                update(ProjectRequest)
                .where(ProjectRequest.id == join_request.id, ProjectRequest.status == RequestStatus.PENDING)
                .values(status=new_status)
                .execution_options(synchronize_session=False)
            ).rowcount == 1
            if not changed:
                raise InvalidTransition('Request already processed.')
            if new_status is RequestStatus.ACCEPTED:
                inserted = _add_member(project.id, join_request.student_id)
                if inserted and project.student_mode is StudentMode.LIMITED_SLOTS:
                    if not claim_project_slot(project.id):
                        raise NoSlotsAvailable('No slots available.')
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise InvalidTransition('Membership changed concurrently, please retry.')
        except AimsError:
            db.session.rollback()
            raise
        logger.info('Project request %s %s by instructor %s', join_request.id, new_status.value, instructor.id)
        return join_request
