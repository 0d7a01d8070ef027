"""
AIMS-Lite - Test Configuration and Fixtures
"""
import secrets
from collections import namedtuple
import pytest

from app import create_app
from config import TestingConfig
from extensions import db, mail
from models import (User, Role, AccountStatus, Course, CourseStatus, Enrollment, EnrollmentStatus,
                    Project, StudentMode, ProjectVisibility)

Actor = namedtuple('Actor', ['id', 'email', 'token', 'headers'])


@pytest.fixture
def app():
    """Fresh application with an empty in-memory schema for each test"""
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create a user and, when ACTIVE, give it a live session token"""
    counter = {'n': 0}

    def _make_user(role, status=AccountStatus.ACTIVE, department='CSE', advisor=None, email=None, **extra):
        counter['n'] += 1
        email = email or f'{role.value.lower()}{counter["n"]}@iitrpr.ac.in'
        with app.app_context():
            user = User(
                email=email,
                full_name=extra.pop('full_name', f'{role.value} {counter["n"]}'),
                role=role,
                account_status=status,
                department=department,
                advisor_id=advisor.id if advisor is not None else None,
                **extra,
            )
            if status == AccountStatus.ACTIVE:
                user.active_session_id = secrets.token_urlsafe(16)
            db.session.add(user)
            db.session.commit()
            token = user.active_session_id
            headers = {'X-Session-Id': token} if token else {}
            return Actor(user.id, user.email, token, headers)

    return _make_user


@pytest.fixture
def advisor(make_user):
    return make_user(Role.ADVISOR)


@pytest.fixture
def instructor(make_user, advisor):
    return make_user(Role.INSTRUCTOR, advisor=advisor)


@pytest.fixture
def student(make_user, advisor):
    return make_user(Role.STUDENT, advisor=advisor, entry_no='2023CSB1001', batch='2023')


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN)


@pytest.fixture
def make_course(app, instructor, advisor):
    """Insert a course directly, APPROVED by default"""
    def _make_course(capacity=30, credits=4, slot='A', acad_session='2025-II', status=CourseStatus.APPROVED,
                     owner=None, code='CS301', enrolled_count=0, co_instructors=()):
        owner = owner or instructor
        with app.app_context():
            course = Course(
                course_code=code,
                title=f'{code} Course',
                department='CSE',
                acad_session=acad_session,
                credits=credits,
                slot=slot,
                capacity=capacity,
                enrolled_count=enrolled_count,
                status=status,
                created_by=owner.id,
                advisor_id=advisor.id,
                co_instructors=[db.session.get(User, c.id) for c in co_instructors],
            )
            db.session.add(course)
            db.session.commit()
            return course.id

    return _make_course


@pytest.fixture
def make_enrollment(app):
    """Insert an enrollment row in a given state, bypassing the workflow"""
    def _make_enrollment(student, course_id, status=EnrollmentStatus.PENDING_INSTRUCTOR_APPROVAL, grade=None):
        with app.app_context():
            enrollment = Enrollment(student_id=student.id, course_id=course_id, status=status, grade=grade)
            db.session.add(enrollment)
            if status == EnrollmentStatus.ENROLLED:
                course = db.session.get(Course, course_id)
                course.enrolled_count += 1
            db.session.commit()
            return enrollment.id

    return _make_enrollment


@pytest.fixture
def make_project(app, instructor):
    def _make_project(mode=StudentMode.LIMITED_SLOTS, slots=1, visibility=ProjectVisibility.INSTITUTE_PUBLIC,
                      owner=None):
        owner = owner or instructor
        with app.app_context():
            project = Project(
                title='Graph Neural Networks for Traffic',
                summary='Forecasting traffic with GNNs',
                description='Build and evaluate spatio-temporal graph models.',
                domain='Machine Learning',
                visibility=visibility,
                student_mode=mode,
                student_slots=slots if mode is StudentMode.LIMITED_SLOTS else None,
                created_by=owner.id,
            )
            db.session.add(project)
            db.session.commit()
            return project.id

    return _make_project


@pytest.fixture
def fetch(app):
    """Reload a row by primary key in a fresh context"""
    def _fetch(model, pk):
        with app.app_context():
            obj = db.session.get(model, pk)
            if obj is not None:
                db.session.expunge(obj)
            return obj

    return _fetch


@pytest.fixture
def outbox(app):
    """Mail sent through Flask-Mail while the test runs"""
    with mail.record_messages() as messages:
        yield messages
