"""Degree program applications (concentration, minor, additional internship)."""
import logging
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from extensions import db
from exceptions import AimsError, NotFound, ValidationError, InvalidTransition, DuplicateApplication
from models import User, StudentProgram, ProgramType, ProgramStatus, ACTIVE_PROGRAM_STATUSES
from utils.notifier import EmailNotifier
from utils.timezone import local_now_naive

logger = logging.getLogger(__name__)

PROGRAM_ACTIONS = {'APPROVE': ProgramStatus.APPROVED, 'REJECT': ProgramStatus.REJECTED}


def _active_program(student):
    return (StudentProgram.query
            .filter(StudentProgram.student_id == student.id, StudentProgram.status.in_(ACTIVE_PROGRAM_STATUSES))
            .first())


class ProgramManager:

    @staticmethod
    def apply(student: User, data) -> StudentProgram:
        active = _active_program(student)
        if active is not None:
            raise DuplicateApplication(
                f'You already have an active application: {active.program_type.value} ({active.status.value}). '
                'Please drop it before applying for another.')

        program_type = ProgramType(data['program_type'])
        target_branch = (data.get('target_branch') or '').strip() or None
        semester = (data.get('semester') or '').strip() or None
        program = StudentProgram(
            student_id=student.id,
            program_type=program_type,
            target_branch=target_branch if program_type is ProgramType.MINOR else None,
            semester=semester if program_type is ProgramType.ADDITIONAL_INTERNSHIP else None,
            status=ProgramStatus.PENDING,
        )
        db.session.add(program)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateApplication('You already have an active application.')
        logger.info('Program application %s: student %s applied for %s', program.id, student.id, program_type.value)
        return program

    @staticmethod
    def for_student(student: User):
        return (StudentProgram.query.filter_by(student_id=student.id)
                .order_by(StudentProgram.applied_at.desc(), StudentProgram.id.desc()).all())

    @staticmethod
    def pending_requests():
        return (StudentProgram.query.filter_by(status=ProgramStatus.PENDING)
                .order_by(StudentProgram.applied_at, StudentProgram.id).all())

    @staticmethod
    def decide(admin: User, program_id, action) -> StudentProgram:
        action = str(action or '').strip().upper()
        if action not in PROGRAM_ACTIONS:
            raise ValidationError('Invalid action. Expected APPROVE or REJECT.')
        program = db.session.get(StudentProgram, program_id)
        if program is None:
            raise NotFound('Application not found.')

        new_status = PROGRAM_ACTIONS[action]
        try:
            changed = db.session.execute(
                update(StudentProgram)
                .where(StudentProgram.id == program.id, StudentProgram.status == ProgramStatus.PENDING)
                .values(status=new_status, decided_at=local_now_naive(), decided_by=admin.id)
                .execution_options(synchronize_session=False)
            ).rowcount == 1
            if not changed:
                raise InvalidTransition('Application already decided.')
            db.session.commit()
        except AimsError:
            db.session.rollback()
            raise
        logger.info('Program application %s %s by admin %s', program.id, new_status.value, admin.id)
        EmailNotifier.send_program_status(program.student, program)
        return program

    @staticmethod
    def drop(student: User, program_id) -> StudentProgram:
        """Withdraw the student's own active application; the student reverts to General B.Tech."""
        program = db.session.get(StudentProgram, program_id)
        if program is None or program.student_id != student.id:
            raise NotFound('Application not found.')
        try:
            changed = db.session.execute(
                update(StudentProgram)
                .where(StudentProgram.id == program.id, StudentProgram.status.in_(ACTIVE_PROGRAM_STATUSES))
                .values(status=ProgramStatus.REJECTED, decided_at=local_now_naive(), decided_by=student.id)
                .execution_options(synchronize_session=False)
            ).rowcount == 1
            if not changed:
                raise InvalidTransition('Application is not active.')
            db.session.commit()
        except AimsError:
            db.session.rollback()
            raise
        logger.info('Program application %s dropped by student %s', program.id, student.id)
        return program
