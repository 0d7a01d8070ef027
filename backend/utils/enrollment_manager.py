"""Enrollment workflow: apply, instructor/advisor decisions, drop, grading.

State changes are compare-and-set UPDATEs (``WHERE status = <observed>``)
checked by rowcount, so a transition decided on a stale read fails instead
of overwriting a concurrent one. Seat changes share the transaction of the
status change that causes them.
"""
import csv
import io
import logging
from typing import Dict, List, Optional, Tuple
from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from extensions import db
from exceptions import (AimsError, NotFound, Forbidden, ValidationError, InvalidTransition,
                        DuplicateApplication, CapacityExceeded, WindowClosed)
from models import User, Course, CourseStatus, Enrollment, EnrollmentStatus, GRADE_SCHEME, GRADE_POINTS
from models.enrollment import PENDING_STATUSES, ACTIVE_STATUSES, REAPPLY_STATUSES, NON_EARNING_GRADES
from utils.course_manager import get_teaching_course
from utils.notifier import EmailNotifier
from utils.request_helpers import to_int
from utils.seat_counter import claim_course_seat, release_course_seat, reset_course_seats
from utils.system_settings_helper import get_flag, COURSE_REGISTRATION, GRADE_SUBMISSION

logger = logging.getLogger(__name__)

INSTRUCTOR_ACTIONS = ('ACCEPT', 'REJECT', 'REMOVE')
ADVISOR_ACTIONS = ('ACCEPT', 'REJECT')


def normalize_action(action, allowed):
    value = str(action or '').strip().upper()
    if value not in allowed:
        raise ValidationError(f'Invalid action. Expected one of: {", ".join(allowed)}.')
    return value


def normalize_grade(grade, allowed=GRADE_SCHEME):
    value = str(grade or '').strip().upper()
    if not value:
        raise ValidationError('Grade is required.')
    if value not in allowed:
        raise ValidationError(f'Invalid grade "{grade}".')
    return value


def get_enrollment(enrollment_id):
    enrollment = db.session.get(Enrollment, enrollment_id) if enrollment_id is not None else None
    if enrollment is None:
        raise NotFound('Enrollment not found.')
    return enrollment


def get_coordinated_course(instructor, course_id):
    """Course whose coordinator is ``instructor``; co-instructors only get read access."""
    course = get_teaching_course(instructor, course_id)
    if not course.is_coordinator(instructor):
        raise Forbidden('Only the course coordinator can manage this course.')
    return course


def _compare_and_set(enrollment_id, expected, **values):
    """Move an enrollment out of ``expected`` status(es). Returns True if the row changed."""
    if isinstance(expected, EnrollmentStatus):
        expected = (expected,)
    stmt = (
        update(Enrollment)
        .where(Enrollment.id == enrollment_id, Enrollment.status.in_(expected))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount == 1


def _notify(enrollment):
    EmailNotifier.send_enrollment_status(enrollment.student, enrollment.course, enrollment.status)


class EnrollmentManager:
    """Lifecycle of a (student, course) enrollment."""

    @staticmethod
    def apply(student: User, course_id) -> Tuple[Enrollment, bool]:
        """Submit an application. Returns (enrollment, reapplied)."""
        course = db.session.get(Course, course_id) if course_id is not None else None
        if course is None:
            raise NotFound('Course not found.')
        if course.status != CourseStatus.APPROVED:
            raise InvalidTransition('Course is not open for enrollment.')
        if not get_flag(COURSE_REGISTRATION):
            raise WindowClosed('Course registration is currently CLOSED.')

        existing = Enrollment.query.filter_by(student_id=student.id, course_id=course.id).first()
        if existing is not None and existing.status in ACTIVE_STATUSES:
            raise DuplicateApplication('Active application exists.')
        EnrollmentManager._check_credit_limit(student, course)
        EnrollmentManager._check_slot_collision(student, course)

        try:
            if existing is not None:
                if not _compare_and_set(existing.id, REAPPLY_STATUSES,
                                        status=EnrollmentStatus.PENDING_INSTRUCTOR_APPROVAL, grade=None):
                    raise DuplicateApplication('Active application exists.')
                enrollment = existing
            else:
                enrollment = Enrollment(student_id=student.id, course_id=course.id,
                                        status=EnrollmentStatus.PENDING_INSTRUCTOR_APPROVAL)
                db.session.add(enrollment)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateApplication('Active application exists.')
        except AimsError:
            db.session.rollback()
            raise
        logger.info('Enrollment %s: student %s applied to course %s', enrollment.id, student.id, course.id)
        _notify(enrollment)
        return enrollment, existing is not None

    @staticmethod
    def _check_credit_limit(student, course):
        if not course.credits:
            return
        limit = current_app.config.get('MAX_CREDITS_PER_SESSION', 24)
        used = (
            db.session.query(db.func.coalesce(db.func.sum(Course.credits), 0))
            .select_from(Course)
            .join(Enrollment, Enrollment.course_id == Course.id)
            .filter(Enrollment.student_id == student.id,
                    Enrollment.status.in_(ACTIVE_STATUSES),
                    Course.acad_session == course.acad_session,
                    Course.id != course.id)
            .scalar()
        )
        if used + course.credits > limit:
            raise ValidationError(f'Credit limit exceeded. You cannot enroll in more than {limit} credits per semester.')

    @staticmethod
    def _check_slot_collision(student, course):
        if not course.slot:
            return
        clash = (
            Enrollment.query.join(Course, Enrollment.course_id == Course.id)
            .filter(Enrollment.student_id == student.id,
                    Enrollment.status == EnrollmentStatus.ENROLLED,
                    Course.acad_session == course.acad_session,
                    Course.slot == course.slot,
                    Course.id != course.id)
            .first()
        )
        if clash is not None:
            raise ValidationError(f'Slot collision with course on slot {course.slot}. Please drop that course first.')

    @staticmethod
    def instructor_decide(instructor: User, enrollment_id, action) -> Enrollment:
        action = normalize_action(action, INSTRUCTOR_ACTIONS)
        enrollment = get_enrollment(enrollment_id)
        course = enrollment.course
        if not course.is_coordinator(instructor):
            raise Forbidden('Only the course coordinator can approve students.')
        previous = enrollment.status

        if action == 'REMOVE':
            if previous != EnrollmentStatus.ENROLLED:
                raise InvalidTransition('Only enrolled students can be removed.')
            if enrollment.is_graded:
                raise InvalidTransition('Cannot remove a graded student.')
            try:
                changed = (
                    db.session.execute(
                        update(Enrollment)
                        .where(Enrollment.id == enrollment.id,
                               Enrollment.status == EnrollmentStatus.ENROLLED,
                               Enrollment.grade.is_(None))
                        .values(status=EnrollmentStatus.INSTRUCTOR_REJECTED)
                        .execution_options(synchronize_session=False)
                    ).rowcount == 1
                )
                if not changed:
                    raise InvalidTransition('Enrollment changed concurrently, please retry.')
                release_course_seat(course.id)
                db.session.commit()
            except AimsError:
                db.session.rollback()
                raise
        else:
            if previous != EnrollmentStatus.PENDING_INSTRUCTOR_APPROVAL:
                raise InvalidTransition('Enrollment is not awaiting instructor approval.')
            new_status = (EnrollmentStatus.PENDING_ADVISOR_APPROVAL if action == 'ACCEPT'
                          else EnrollmentStatus.INSTRUCTOR_REJECTED)
            if not _compare_and_set(enrollment.id, EnrollmentStatus.PENDING_INSTRUCTOR_APPROVAL, status=new_status):
                db.session.rollback()
                raise InvalidTransition('Enrollment is not awaiting instructor approval.')
            db.session.commit()

        logger.info('Enrollment %s: %s -> %s by instructor %s', enrollment.id, previous.value,
                    enrollment.status.value, instructor.id)
        _notify(enrollment)
        return enrollment

    @staticmethod
    def advisor_decide(advisor: User, enrollment_id, action) -> Enrollment:
        """Advisor decision; ACCEPT claims a seat in the same transaction.

        When the course is full the enrollment is left in
        PENDING_ADVISOR_APPROVAL and CapacityExceeded is raised.
        """
        action = normalize_action(action, ADVISOR_ACTIONS)
        enrollment = get_enrollment(enrollment_id)
        if enrollment.student is None or enrollment.student.advisor_id != advisor.id:
            raise Forbidden('Student is not assigned to you.')
        if enrollment.status != EnrollmentStatus.PENDING_ADVISOR_APPROVAL:
            raise InvalidTransition('Enrollment not ready for advisor approval.')

        new_status = EnrollmentStatus.ENROLLED if action == 'ACCEPT' else EnrollmentStatus.ADVISOR_REJECTED
        try:
            if not _compare_and_set(enrollment.id, EnrollmentStatus.PENDING_ADVISOR_APPROVAL, status=new_status):
                raise InvalidTransition('Enrollment not ready for advisor approval.')
            if new_status == EnrollmentStatus.ENROLLED and not claim_course_seat(enrollment.course_id):
                raise CapacityExceeded('Course capacity reached.')
            db.session.commit()
        except AimsError:
            db.session.rollback()
            raise

        logger.info('Enrollment %s: PENDING_ADVISOR_APPROVAL -> %s by advisor %s', enrollment.id,
                    new_status.value, advisor.id)
        _notify(enrollment)
        return enrollment

    @staticmethod
    def drop(student: User, enrollment_id) -> Enrollment:
        enrollment = get_enrollment(enrollment_id)
        if enrollment.student_id != student.id:
            raise Forbidden('You can only drop your own enrollments.')
        if enrollment.is_graded:
            raise InvalidTransition('Cannot drop graded course.')
        previous = enrollment.status
        if previous not in ACTIVE_STATUSES:
            raise InvalidTransition('Enrollment is already closed.')

        try:
            changed = (
                db.session.execute(
                    update(Enrollment)
                    .where(Enrollment.id == enrollment.id,
                           Enrollment.status == previous,
                           Enrollment.grade.is_(None))
                    .values(status=EnrollmentStatus.DROPPED_BY_STUDENT)
                    .execution_options(synchronize_session=False)
                ).rowcount == 1
            )
            if not changed:
                raise InvalidTransition('Enrollment changed concurrently, please retry.')
            if previous == EnrollmentStatus.ENROLLED:
                release_course_seat(enrollment.course_id)
            db.session.commit()
        except AimsError:
            db.session.rollback()
            raise

        logger.info('Enrollment %s: %s -> DROPPED_BY_STUDENT', enrollment.id, previous.value)
        _notify(enrollment)
        return enrollment

    @staticmethod
    def reset_all() -> int:
        """Delete every enrollment and zero all seat counters."""
        deleted = db.session.query(Enrollment).delete(synchronize_session=False)
        reset_course_seats()
        db.session.commit()
        logger.warning('All enrollments reset (%s rows removed)', deleted)
        return deleted

    @staticmethod
    def applications_for_course(instructor: User, course_id) -> List[Enrollment]:
        course = get_teaching_course(instructor, course_id)
        visible = PENDING_STATUSES + (EnrollmentStatus.ENROLLED, EnrollmentStatus.ADVISOR_REJECTED)
        return (Enrollment.query.filter(Enrollment.course_id == course.id, Enrollment.status.in_(visible))
                .order_by(Enrollment.id).all())

    @staticmethod
    def enrolled_students(instructor: User, course_id) -> List[Enrollment]:
        course = get_teaching_course(instructor, course_id)
        return (Enrollment.query.filter_by(course_id=course.id, status=EnrollmentStatus.ENROLLED)
                .order_by(Enrollment.id).all())

    @staticmethod
    def pending_for_advisor(advisor: User, course_id=None) -> List[Enrollment]:
        query = (Enrollment.query.join(User, Enrollment.student_id == User.id)
                 .filter(User.advisor_id == advisor.id,
                         Enrollment.status == EnrollmentStatus.PENDING_ADVISOR_APPROVAL))
        if course_id is not None:
            query = query.filter(Enrollment.course_id == course_id)
        return query.order_by(Enrollment.id).all()

    @staticmethod
    def for_student(student: User) -> List[Enrollment]:
        return (Enrollment.query.join(Course, Enrollment.course_id == Course.id)
                .filter(Enrollment.student_id == student.id)
                .order_by(Course.acad_session.desc(), Course.course_code).all())


class GradeManager:
    """Single and batch grade award."""

    @staticmethod
    def _require_grading_open():
        if not get_flag(GRADE_SUBMISSION):
            raise WindowClosed('Grade submission is currently CLOSED.')

    @staticmethod
    def _grade_statement(enrollment_id, grade, course_id=None):
        conditions = [Enrollment.id == enrollment_id,
                      Enrollment.status == EnrollmentStatus.ENROLLED,
                      Enrollment.grade.is_(None)]
        if course_id is not None:
            conditions.append(Enrollment.course_id == course_id)
        return (update(Enrollment).where(*conditions).values(grade=grade)
                .execution_options(synchronize_session=False))

    @staticmethod
    def award_grade(instructor: User, enrollment_id, grade) -> Enrollment:
        GradeManager._require_grading_open()
        grade = normalize_grade(grade)
        enrollment = get_enrollment(enrollment_id)
        if not enrollment.course.is_coordinator(instructor):
            raise Forbidden('Only the course coordinator can award grades.')
        if enrollment.status != EnrollmentStatus.ENROLLED:
            raise InvalidTransition('Student must be enrolled.')
        if enrollment.is_graded:
            raise InvalidTransition('Grade already awarded.')
        if db.session.execute(GradeManager._grade_statement(enrollment.id, grade)).rowcount != 1:
            db.session.rollback()
            raise InvalidTransition('Grade already awarded.')
        db.session.commit()
        logger.info('Enrollment %s graded %s by instructor %s', enrollment.id, grade, instructor.id)
        return enrollment

    @staticmethod
    def allowed_grades(valid_grades=None):
        if not valid_grades:
            return GRADE_SCHEME
        requested = {str(g).strip().upper() for g in valid_grades}
        return tuple(g for g in GRADE_SCHEME if g in requested)

    @staticmethod
    def parse_rows(data) -> List[Dict]:
        """Accept a list of row dicts or raw CSV text with email,name,grade headers."""
        if data is None:
            raise ValidationError('No grade data provided.')
        if isinstance(data, str):
            reader = csv.DictReader(io.StringIO(data.strip()))
            return [{(key or '').strip().lower(): (value or '') for key, value in row.items()} for row in reader]
        if not isinstance(data, list):
            raise ValidationError('Grade data must be a list of rows or CSV text.')
        return [row if isinstance(row, dict) else {} for row in data]

    @staticmethod
    def validate_rows(instructor: User, course_id, data, valid_grades=None) -> Dict[str, List[Dict]]:
        """Check each row on its own; nothing is written."""
        course = get_coordinated_course(instructor, course_id)
        allowed = GradeManager.allowed_grades(valid_grades)
        rows = GradeManager.parse_rows(data)

        student_map = {}
        enrolled = (Enrollment.query.join(User, Enrollment.student_id == User.id)
                    .filter(Enrollment.course_id == course.id,
                            Enrollment.status == EnrollmentStatus.ENROLLED).all())
        for enrollment in enrolled:
            email = (enrollment.student.email or '').lower()
            student_map.setdefault(email, []).append(enrollment)

        valid_rows, invalid_rows = [], []
        for idx, row in enumerate(rows):
            row_number = idx + 2  # row 1 is the CSV header
            raw_grade = str(row.get('grade') or '').strip()
            email = str(row.get('email') or '').strip()
            name = str(row.get('name') or '').strip()
            error = None
            match = None
            if raw_grade.upper() not in allowed:
                error = f'Invalid grade "{raw_grade}".'
            elif not email:
                error = 'Email is required.'
            elif email.lower() not in student_map:
                error = f'No enrolled student found with email "{email}".'
            else:
                candidates = student_map[email.lower()]
                if name:
                    candidates = [e for e in candidates if e.student.full_name.strip().lower() == name.lower()]
                if not candidates:
                    error = f'No enrolled student found with name "{name}" and email "{email}".'
                elif candidates[0].is_graded:
                    error = 'Grade already awarded.'
                else:
                    match = candidates[0]
            if error:
                invalid_rows.append({'row_number': row_number, 'error': error})
            else:
                valid_rows.append({
                    'row_number': row_number,
                    'name': match.student.full_name,
                    'email': match.student.email,
                    'grade': raw_grade.upper(),
                    'enrollment_id': match.id,
                })
        return {'valid_rows': valid_rows, 'invalid_rows': invalid_rows}

    @staticmethod
    def submit_mass_grades(instructor: User, course_id, grades, confirm=False) -> int:
        """Apply a confirmed batch in one transaction; any bad row rolls back all."""
        if not confirm:
            raise ValidationError('Mass grade submission must be explicitly confirmed.')
        GradeManager._require_grading_open()
        course = get_coordinated_course(instructor, course_id)
        if not isinstance(grades, list) or not grades:
            raise ValidationError('No grades provided.')

        try:
            for idx, entry in enumerate(grades, start=1):
                if not isinstance(entry, dict):
                    raise ValidationError(f'Row {idx}: malformed entry.')
                try:
                    grade = normalize_grade(entry.get('grade'))
                except ValidationError as exc:
                    raise ValidationError(f'Row {idx}: {exc.message}')
                if entry.get('enrollment_id') is None:
                    raise ValidationError(f'Row {idx}: enrollment_id is required.')
                try:
                    enrollment_id = to_int(entry['enrollment_id'], 'enrollment_id')
                except ValidationError as exc:
                    raise ValidationError(f'Row {idx}: {exc.message}')
                stmt = GradeManager._grade_statement(enrollment_id, grade, course_id=course.id)
                if db.session.execute(stmt).rowcount != 1:
                    raise InvalidTransition(
                        f'Row {idx}: enrollment {enrollment_id} is not an ungraded enrollment in this course.')
            db.session.commit()
        except AimsError:
            db.session.rollback()
            raise
        logger.info('Course %s: %s grades submitted by instructor %s', course.id, len(grades), instructor.id)
        return len(grades)


def calculate_sgpa(enrollments: List[Enrollment]) -> str:
    total_points = 0
    total_credits = 0
    for enrollment in enrollments:
        points = GRADE_POINTS.get(enrollment.grade) if enrollment.grade else None
        if points is None or enrollment.course is None:
            continue
        credits = enrollment.course.credits or 0
        total_points += credits * points
        total_credits += credits
    return f'{total_points / total_credits:.2f}' if total_credits > 0 else '0.00'


class RecordsManager:
    """Read-side summaries of a student's enrollments."""

    @staticmethod
    def _student_enrollments(student):
        return (Enrollment.query.join(Course, Enrollment.course_id == Course.id)
                .filter(Enrollment.student_id == student.id)
                .order_by(Enrollment.id.desc()).all())

    @staticmethod
    def session_records(student: User, session: Optional[str]) -> Dict:
        records = [e for e in RecordsManager._student_enrollments(student)
                   if e.course and e.course.acad_session == session]
        credits_used = sum((e.course.credits or 0) for e in records if e.status in ACTIVE_STATUSES)
        return {
            'records': [e.to_dict(include_course=True) for e in records],
            'sgpa': calculate_sgpa(records),
            'creditsUsed': credits_used,
        }

    @staticmethod
    def all_records(student: User) -> Dict:
        by_session = {}
        for enrollment in RecordsManager._student_enrollments(student):
            session = enrollment.course.acad_session or 'Unknown'
            by_session.setdefault(session, []).append(enrollment)

        sessions = {}
        graded = []
        for session in sorted(by_session):
            records = by_session[session]
            registered = sum((e.course.credits or 0) for e in records)
            earned = sum((e.course.credits or 0) for e in records
                         if e.status == EnrollmentStatus.ENROLLED and e.grade and e.grade not in NON_EARNING_GRADES)
            sessions[session] = {
                'sgpa': calculate_sgpa(records),
                'credits_registered': registered,
                'credits_earned': earned,
                'records': [e.to_dict(include_course=True) for e in records],
            }
            graded.extend(records)
        cumulative_credits = sum((e.course.credits or 0) for e in graded
                                 if e.grade and GRADE_POINTS.get(e.grade) is not None)
        return {'sessions': sessions, 'cgpa': calculate_sgpa(graded), 'totalCumulativeCredits': cumulative_credits}
