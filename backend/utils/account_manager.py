import logging
from sqlalchemy import update
from extensions import db
from exceptions import AimsError, NotFound, ValidationError, Forbidden
from models import User, Role, AccountStatus, Course, Enrollment, EnrollmentStatus
from utils.course_manager import least_loaded_advisor
from utils.notifier import EmailNotifier
from utils.seat_counter import release_course_seat

logger = logging.getLogger(__name__)

STATUS_ACTIONS = {
    'APPROVE': (AccountStatus.ACTIVE, 'APPROVED'),
    'REJECT': (AccountStatus.REJECTED, 'REJECTED'),
    'BLOCK': (AccountStatus.BLOCKED, 'BLOCKED'),
}


def get_user(user_id):
    user = db.session.get(User, user_id) if user_id is not None else None
    if user is None:
        raise NotFound('User not found.')
    return user


class AccountManager:
    """Admin-side account lifecycle."""

    @staticmethod
    def list_users(status=None, role=None):
        query = User.query
        if status is not None:
            query = query.filter(User.account_status == status)
        if role is not None:
            query = query.filter(User.role == role)
        return query.order_by(User.id).all()

    @staticmethod
    def set_status(admin: User, user_id, action) -> User:
        action = str(action or '').strip().upper()
        if action not in STATUS_ACTIONS:
            raise ValidationError('Invalid action. Expected APPROVE, REJECT or BLOCK.')
        user = get_user(user_id)
        if user.id == admin.id:
            raise Forbidden('You cannot change your own account status.')

        new_status, notice = STATUS_ACTIONS[action]
        user.account_status = new_status
        if new_status != AccountStatus.ACTIVE:
            user.active_session_id = None
        elif user.role in (Role.STUDENT, Role.INSTRUCTOR) and user.advisor_id is None:
            advisor = least_loaded_advisor(user.department)
            if advisor is not None:
                user.advisor_id = advisor.id
            else:
                logger.warning('No active advisor in department %s for user %s', user.department, user.id)
        db.session.commit()
        logger.info('Admin %s set user %s to %s', admin.id, user.id, new_status.value)
        EmailNotifier.send_account_status(user.email, notice)
        return user

    @staticmethod
    def delete_user(admin: User, user_id) -> None:
        user = get_user(user_id)
        if user.id == admin.id:
            raise Forbidden('You cannot delete your own account.')
        if user.role == Role.INSTRUCTOR and Course.query.filter_by(created_by=user.id).first() is not None:
            raise ValidationError('Instructor has floated courses. Reassign or remove them first.')

        email = user.email
        try:
            enrolled = Enrollment.query.filter_by(student_id=user.id, status=EnrollmentStatus.ENROLLED).all()
            for enrollment in enrolled:
                release_course_seat(enrollment.course_id)
            if user.role == Role.ADVISOR:
                db.session.execute(
                    update(Course).where(Course.advisor_id == user.id).values(advisor_id=None)
                    .execution_options(synchronize_session=False)
                )
                db.session.execute(
                    update(User).where(User.advisor_id == user.id).values(advisor_id=None)
                    .execution_options(synchronize_session=False)
                )
            db.session.delete(user)
            db.session.commit()
        except AimsError:
            db.session.rollback()
            raise
        logger.info('Admin %s deleted user %s (%s)', admin.id, user_id, email)
        EmailNotifier.send_account_status(email, 'REMOVED')
