from models import Role, User, AccountStatus, Course, Enrollment, EnrollmentStatus


def _set_status(client, admin, user_id, action):
    return client.post('/api/admin/user-status', json={'user_id': user_id, 'action': action}, headers=admin.headers)


def test_approve_assigns_least_loaded_advisor(client, fetch, outbox, make_user, admin):
    busy = make_user(Role.ADVISOR, department='EE')
    idle = make_user(Role.ADVISOR, department='EE')
    make_user(Role.STUDENT, department='EE', advisor=busy)
    newcomer = make_user(Role.STUDENT, status=AccountStatus.PENDING, department='EE')

    response = _set_status(client, admin, newcomer.id, 'APPROVE')
    assert response.status_code == 200
    user = fetch(User, newcomer.id)
    assert user.account_status == AccountStatus.ACTIVE
    assert user.advisor_id == idle.id
    assert outbox[-1].subject == 'Account Approved'
    assert outbox[-1].recipients == [newcomer.email]


def test_block_clears_session(client, fetch, admin, student):
    assert _set_status(client, admin, student.id, 'BLOCK').status_code == 200
    user = fetch(User, student.id)
    assert user.account_status == AccountStatus.BLOCKED
    assert user.active_session_id is None
    assert client.get('/api/auth/me', headers=student.headers).status_code == 401


def test_reject_pending_user(client, fetch, make_user, admin):
    pending = make_user(Role.INSTRUCTOR, status=AccountStatus.PENDING)
    assert _set_status(client, admin, pending.id, 'REJECT').status_code == 200
    assert fetch(User, pending.id).account_status == AccountStatus.REJECTED


def test_unknown_status_action(client, admin, student):
    assert _set_status(client, admin, student.id, 'PROMOTE').status_code == 400


def test_admin_routes_need_admin(client, student):
    assert client.get('/api/admin/users', headers=student.headers).status_code == 403


def test_list_users_filters_by_status(client, make_user, admin):
    pending = make_user(Role.STUDENT, status=AccountStatus.PENDING)
    response = client.get('/api/admin/users?status=pending', headers=admin.headers)
    assert [u['user_id'] for u in response.get_json()] == [pending.id]


def test_delete_student_releases_seats(client, fetch, admin, student, make_course, make_enrollment):
    course_id = make_course(capacity=1)
    enrollment_id = make_enrollment(student, course_id, status=EnrollmentStatus.ENROLLED)

    response = client.post('/api/admin/delete-user', json={'user_id': student.id}, headers=admin.headers)
    assert response.status_code == 200
    assert fetch(User, student.id) is None
    assert fetch(Enrollment, enrollment_id) is None
    assert fetch(Course, course_id).enrolled_count == 0


def test_delete_instructor_with_courses_refused(client, fetch, admin, instructor, make_course):
    make_course()
    response = client.post('/api/admin/delete-user', json={'user_id': instructor.id}, headers=admin.headers)
    assert response.status_code == 400
    assert fetch(User, instructor.id) is not None


def test_delete_advisor_unbinds_courses(client, fetch, admin, advisor, instructor, make_course):
    course_id = make_course()
    response = client.post('/api/admin/delete-user', json={'user_id': advisor.id}, headers=admin.headers)
    assert response.status_code == 200
    assert fetch(Course, course_id).advisor_id is None
    assert fetch(User, instructor.id).advisor_id is None


def test_reset_enrollments(client, app, fetch, admin, student, make_course, make_enrollment):
    course_id = make_course()
    make_enrollment(student, course_id, status=EnrollmentStatus.ENROLLED)

    response = client.delete('/api/admin/reset-enrollments', headers=admin.headers)
    assert response.status_code == 200
    assert response.get_json()['deleted'] == 1
    assert fetch(Course, course_id).enrolled_count == 0
    with app.app_context():
        assert Enrollment.query.count() == 0


def test_toggle_registration(client, admin):
    assert client.get('/api/admin/system-settings', headers=admin.headers).get_json()['course_registration'] is True

    response = client.post('/api/admin/toggle-registration', json={'is_open': False}, headers=admin.headers)
    assert response.status_code == 200
    assert response.get_json()['course_registration'] is False

    assert client.post('/api/admin/toggle-grading', json={'is_open': 'no'}, headers=admin.headers).status_code == 400


def test_health_and_unknown_route(client):
    assert client.get('/api/health').get_json()['status'] == 'ok'
    response = client.get('/api/nowhere')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Route not found', 'path': '/api/nowhere'}
