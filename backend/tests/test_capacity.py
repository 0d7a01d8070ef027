import threading
import pytest
from app import create_app
from config import TestingConfig
from extensions import db
from exceptions import CapacityExceeded
from models import Role, AccountStatus, User, Course, CourseStatus, Enrollment, EnrollmentStatus
from utils.enrollment_manager import EnrollmentManager
from utils.seat_counter import claim_course_seat, release_course_seat


def test_claim_stops_at_capacity(app, make_course):
    course_id = make_course(capacity=1)
    with app.app_context():
        assert claim_course_seat(course_id) is True
        assert claim_course_seat(course_id) is False
        db.session.commit()
        assert db.session.get(Course, course_id).enrolled_count == 1


def test_release_never_goes_negative(app, make_course):
    course_id = make_course()
    with app.app_context():
        assert release_course_seat(course_id) is False
        db.session.commit()
        assert db.session.get(Course, course_id).enrolled_count == 0


def test_zero_capacity_course_admits_nobody(client, fetch, advisor, student, make_course, make_enrollment):
    course_id = make_course(capacity=0)
    enrollment_id = make_enrollment(student, course_id, status=EnrollmentStatus.PENDING_ADVISOR_APPROVAL)

    response = client.post('/api/advisor/approve-request',
                           json={'enrollment_id': enrollment_id, 'action': 'ACCEPT'}, headers=advisor.headers)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Course capacity reached.'
    assert fetch(Enrollment, enrollment_id).status == EnrollmentStatus.PENDING_ADVISOR_APPROVAL


def test_last_seat_race_admits_only_one(app, make_user, advisor, make_course, make_enrollment):
    course_id = make_course(capacity=1)
    first = make_enrollment(make_user(Role.STUDENT, advisor=advisor), course_id,
                            status=EnrollmentStatus.PENDING_ADVISOR_APPROVAL)
    second = make_enrollment(make_user(Role.STUDENT, advisor=advisor), course_id,
                             status=EnrollmentStatus.PENDING_ADVISOR_APPROVAL)

    with app.app_context():
        approver = db.session.get(User, advisor.id)
        # Both decisions start from the same read: one free seat
        snapshot = db.session.get(Course, course_id)
        assert snapshot.seats_left == 1

        EnrollmentManager.advisor_decide(approver, first, 'ACCEPT')
        with pytest.raises(CapacityExceeded):
            EnrollmentManager.advisor_decide(approver, second, 'ACCEPT')

        assert db.session.get(Course, course_id).enrolled_count == 1
        assert db.session.get(Enrollment, first).status == EnrollmentStatus.ENROLLED
        assert db.session.get(Enrollment, second).status == EnrollmentStatus.PENDING_ADVISOR_APPROVAL


def test_enrolled_count_matches_enrolled_rows(client, app, make_user, advisor, instructor, make_course):
    course_id = make_course(capacity=2)
    students = [make_user(Role.STUDENT, advisor=advisor) for _ in range(3)]
    for student in students:
        enrollment_id = client.post('/api/student/apply', json={'course_id': course_id},
                                    headers=student.headers).get_json()['enrollment']['enrollment_id']
        client.post('/api/instructor/approve-request', json={'enrollment_id': enrollment_id, 'action': 'ACCEPT'},
                    headers=instructor.headers)
        client.post('/api/advisor/approve-request', json={'enrollment_id': enrollment_id, 'action': 'ACCEPT'},
                    headers=advisor.headers)

    with app.app_context():
        enrolled = Enrollment.query.filter_by(course_id=course_id, status=EnrollmentStatus.ENROLLED).count()
        course = db.session.get(Course, course_id)
        assert enrolled == 2
        assert course.enrolled_count == enrolled
        assert course.enrolled_count <= course.capacity


@pytest.fixture
def file_app(tmp_path):
    """App on a file-backed SQLite database so separate threads get separate connections"""
    class FileTestingConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{tmp_path / "aims.db"}'
        SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'timeout': 15, 'check_same_thread': False}}

    app = create_app(FileTestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _seed_last_seat(app):
    with app.app_context():
        advisor = User(email='adv@iitrpr.ac.in', full_name='Advisor', role=Role.ADVISOR,
                       account_status=AccountStatus.ACTIVE, department='CSE')
        db.session.add(advisor)
        db.session.flush()
        instructor = User(email='ins@iitrpr.ac.in', full_name='Instructor', role=Role.INSTRUCTOR,
                          account_status=AccountStatus.ACTIVE, department='CSE', advisor_id=advisor.id)
        students = [User(email=f'stu{n}@iitrpr.ac.in', full_name=f'Student {n}', role=Role.STUDENT,
                         account_status=AccountStatus.ACTIVE, department='CSE', advisor_id=advisor.id)
                    for n in range(2)]
        db.session.add_all([instructor] + students)
        db.session.flush()
        course = Course(course_code='CS301', title='Last Seat', department='CSE', acad_session='2025-II',
                        credits=4, slot='A', capacity=1, enrolled_count=0, status=CourseStatus.APPROVED,
                        created_by=instructor.id, advisor_id=advisor.id)
        db.session.add(course)
        db.session.flush()
        enrollments = [Enrollment(student_id=s.id, course_id=course.id,
                                  status=EnrollmentStatus.PENDING_ADVISOR_APPROVAL) for s in students]
        db.session.add_all(enrollments)
        db.session.commit()
        return advisor.id, course.id, [e.id for e in enrollments]


def test_concurrent_last_seat_approvals_admit_exactly_one(file_app):
    advisor_id, course_id, enrollment_ids = _seed_last_seat(file_app)
    barrier = threading.Barrier(2)
    outcomes = {}

    def decide(enrollment_id):
        with file_app.app_context():
            approver = db.session.get(User, advisor_id)
            barrier.wait(timeout=10)
            try:
                EnrollmentManager.advisor_decide(approver, enrollment_id, 'ACCEPT')
                outcomes[enrollment_id] = 'ENROLLED'
            except CapacityExceeded:
                outcomes[enrollment_id] = 'FULL'
            finally:
                db.session.remove()

    threads = [threading.Thread(target=decide, args=(eid,)) for eid in enrollment_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes.values()) == ['ENROLLED', 'FULL']
    with file_app.app_context():
        statuses = {eid: db.session.get(Enrollment, eid).status for eid in enrollment_ids}
        for eid, outcome in outcomes.items():
            expected = (EnrollmentStatus.ENROLLED if outcome == 'ENROLLED'
                        else EnrollmentStatus.PENDING_ADVISOR_APPROVAL)
            assert statuses[eid] == expected
        assert db.session.get(Course, course_id).enrolled_count == 1
