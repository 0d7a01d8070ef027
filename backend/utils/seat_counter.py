"""Atomic seat and slot counters.

Every change to ``Course.enrolled_count`` and ``Project.student_slots`` goes
through these helpers. Each one is a single conditional UPDATE whose WHERE
clause carries the guard, so two requests racing for the last seat cannot
both succeed: the loser's statement matches zero rows. Callers run them
inside their own transaction and roll back when a helper returns False.
"""
from sqlalchemy import update
from extensions import db
from models import Course, Project, StudentMode


def _changed(stmt):
    result = db.session.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount == 1


def claim_course_seat(course_id):
    """Increment enrolled_count if a seat is free. Returns True on success."""
    stmt = (
        update(Course)
        .where(Course.id == course_id, Course.enrolled_count < Course.capacity)
        .values(enrolled_count=Course.enrolled_count + 1)
    )
    return _changed(stmt)


def release_course_seat(course_id):
    stmt = (
        update(Course)
        .where(Course.id == course_id, Course.enrolled_count > 0)
        .values(enrolled_count=Course.enrolled_count - 1)
    )
    return _changed(stmt)


def reset_course_seats():
    result = db.session.execute(
        update(Course).values(enrolled_count=0).execution_options(synchronize_session=False)
    )
    return result.rowcount


def claim_project_slot(project_id):
    """Decrement student_slots of a LIMITED_SLOTS project if one is left."""
    stmt = (
        update(Project)
        .where(
            Project.id == project_id,
            Project.student_mode == StudentMode.LIMITED_SLOTS,
            Project.student_slots > 0,
        )
        .values(student_slots=Project.student_slots - 1)
    )
    return _changed(stmt)
