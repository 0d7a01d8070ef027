import logging
from sqlalchemy import update, func, or_
from extensions import db
from exceptions import AimsError, NotFound, Forbidden, ValidationError, InvalidTransition
from models import User, Role, AccountStatus, Course, CourseStatus, Enrollment, EnrollmentStatus, course_co_instructors
from utils.request_helpers import to_int

logger = logging.getLogger(__name__)

COURSE_ACTIONS = {'APPROVE': CourseStatus.APPROVED, 'REJECT': CourseStatus.REJECTED}


def least_loaded_advisor(department):
    """Active advisor of ``department`` with the fewest advisees, or None."""
    advisee_count = (
        db.session.query(User.advisor_id.label('advisor_id'), func.count(User.id).label('total'))
        .filter(User.advisor_id.isnot(None))
        .group_by(User.advisor_id)
        .subquery()
    )
    return (
        db.session.query(User)
        .outerjoin(advisee_count, advisee_count.c.advisor_id == User.id)
        .filter(User.role == Role.ADVISOR,
                User.account_status == AccountStatus.ACTIVE,
                User.department == department)
        .order_by(func.coalesce(advisee_count.c.total, 0), User.id)
        .first()
    )


def get_course(course_id):
    course = db.session.get(Course, course_id) if course_id is not None else None
    if course is None:
        raise NotFound('Course not found.')
    return course


def get_teaching_course(instructor, course_id):
    """Course the instructor coordinates or co-teaches."""
    course = get_course(course_id)
    if not course.is_taught_by(instructor):
        raise Forbidden('You do not teach this course.')
    return course


def resolve_co_instructors(coordinator, ids):
    """Active instructors named in ``ids``, deduplicated, coordinator excluded."""
    if ids is None:
        return []
    if not isinstance(ids, list):
        raise ValidationError('co_instructors must be a list of instructor ids.')
    instructors = []
    seen = {coordinator.id}
    for raw in ids:
        instructor_id = to_int(raw, 'co_instructors')
        if instructor_id in seen:
            continue
        seen.add(instructor_id)
        instructor = db.session.get(User, instructor_id)
        if (instructor is None or instructor.role != Role.INSTRUCTOR
                or instructor.account_status != AccountStatus.ACTIVE):
            raise ValidationError(f'Unknown co-instructor {instructor_id}.')
        instructors.append(instructor)
    return instructors


class CourseManager:
    """Offerings: floating, advisor approval and lookup."""

    @staticmethod
    def float_course(instructor: User, data, co_instructor_ids=None) -> Course:
        slot = (data.get('slot') or '').strip().upper() or None
        acad_session = (data.get('acad_session') or '').strip()
        if slot:
            clash = Course.query.filter_by(created_by=instructor.id, acad_session=acad_session, slot=slot).first()
            if clash is not None:
                raise ValidationError(f'You already have a course ({clash.course_code}) in slot {slot} this session.')
        co_instructors = resolve_co_instructors(instructor, co_instructor_ids)

        course = Course(
            course_code=data['course_code'].strip().upper(),
            title=data['title'].strip(),
            department=(data.get('department') or instructor.department or '').strip() or None,
            acad_session=acad_session,
            credits=data.get('credits') or 0,
            slot=slot,
            capacity=data.get('capacity') or 0,
            enrolled_count=0,
            status=CourseStatus.PENDING_ADVISOR_APPROVAL,
            created_by=instructor.id,
            advisor_id=instructor.advisor_id,
            co_instructors=co_instructors,
        )
        db.session.add(course)
        db.session.commit()
        logger.info('Course %s (%s) floated by instructor %s, advisor %s', course.id, course.course_code,
                    instructor.id, course.advisor_id)
        return course

    @staticmethod
    def can_decide(actor: User, course: Course) -> bool:
        if course.advisor_id is not None:
            return actor.id == course.advisor_id
        return actor.role == Role.ADMIN

    @staticmethod
    def decide(actor: User, course_id, action) -> Course:
        """APPROVE or REJECT a pending offering; both outcomes are terminal."""
        action = str(action or '').strip().upper()
        if action not in COURSE_ACTIONS:
            raise ValidationError('Invalid action. Expected APPROVE or REJECT.')
        course = get_course(course_id)
        if not CourseManager.can_decide(actor, course):
            raise Forbidden('Unauthorized course approval.')
        if course.status.is_terminal:
            raise InvalidTransition(f'Course already {course.status.value.lower()}.')

        new_status = COURSE_ACTIONS[action]
        try:
            changed = db.session.execute(
                update(Course)
                .where(Course.id == course.id, Course.status == CourseStatus.PENDING_ADVISOR_APPROVAL)
                .values(status=new_status)
                .execution_options(synchronize_session=False)
            ).rowcount == 1
            if not changed:
                raise InvalidTransition('Course already finalized.')
            db.session.commit()
        except AimsError:
            db.session.rollback()
            raise
        logger.info('Course %s %s by %s %s', course.id, new_status.value, actor.role.value, actor.id)
        return course

    @staticmethod
    def pending_for(actor: User):
        query = Course.query.filter(Course.status == CourseStatus.PENDING_ADVISOR_APPROVAL)
        if actor.role == Role.ADMIN:
            query = query.filter(Course.advisor_id.is_(None))
        else:
            query = query.filter(Course.advisor_id == actor.id)
        return query.order_by(Course.id).all()

    @staticmethod
    def courses_for_instructor(instructor: User):
        """Courses the instructor coordinates or co-teaches."""
        co_taught = db.select(course_co_instructors.c.course_id).where(
            course_co_instructors.c.instructor_id == instructor.id)
        return (Course.query.filter(or_(Course.created_by == instructor.id, Course.id.in_(co_taught)))
                .order_by(Course.id.desc()).all())

    @staticmethod
    def courses_for_advisor(advisor: User):
        """Offerings floated by the advisor's instructors, any status."""
        return Course.query.filter_by(advisor_id=advisor.id).order_by(Course.id.desc()).all()

    @staticmethod
    def search(code=None, title=None, department=None, acad_session=None, instructor=None, status=CourseStatus.APPROVED):
        query = Course.query
        if status is not None:
            query = query.filter(Course.status == status)
        if code:
            query = query.filter(Course.course_code.ilike(f'%{code}%'))
        if title:
            query = query.filter(Course.title.ilike(f'%{title}%'))
        if department:
            query = query.filter(Course.department == department)
        if acad_session:
            query = query.filter(Course.acad_session == acad_session)
        if instructor:
            query = query.join(User, Course.created_by == User.id).filter(User.full_name.ilike(f'%{instructor}%'))
        return query.order_by(Course.course_code).all()

    @staticmethod
    def enrolled_roster(course_id):
        course = get_course(course_id)
        return (Enrollment.query.filter_by(course_id=course.id, status=EnrollmentStatus.ENROLLED)
                .order_by(Enrollment.id).all())
