import pytest
from extensions import db
from models import Role, Project, ProjectRequest, ProjectMember, RequestStatus, StudentMode

PROJECT_FORM = {
    'title': 'Low-power Edge Vision',
    'summary': 'Tiny models on microcontrollers',
    'description': 'Quantise and deploy CNNs on MCUs.',
    'domain': 'Embedded ML',
    'visibility': 'INSTITUTE_PUBLIC',
}


@pytest.fixture
def second_student(make_user, advisor):
    return make_user(Role.STUDENT, advisor=advisor)


def _request(client, student, project_id):
    return client.post('/api/student/projects/request', json={'project_id': project_id, 'message': 'Interested'},
                       headers=student.headers)


def _respond(client, instructor, request_id, action='ACCEPT'):
    return client.post('/api/instructor/projects/respond', json={'request_id': request_id, 'action': action},
                       headers=instructor.headers)


def _members(app, project_id):
    with app.app_context():
        return ProjectMember.query.filter_by(project_id=project_id).count()


def test_create_limited_project(client, instructor):
    response = client.post('/api/instructor/projects',
                           json={**PROJECT_FORM, 'student_mode': 'LIMITED_SLOTS', 'student_slots': 2},
                           headers=instructor.headers)
    assert response.status_code == 201
    body = response.get_json()
    assert body['student_mode'] == 'LIMITED_SLOTS'
    assert body['student_slots'] == 2


def test_limited_project_needs_positive_slots(client, instructor):
    response = client.post('/api/instructor/projects',
                           json={**PROJECT_FORM, 'student_mode': 'LIMITED_SLOTS', 'student_slots': 0},
                           headers=instructor.headers)
    assert response.status_code == 400


def test_open_project_has_no_slot_count(client, instructor):
    response = client.post('/api/instructor/projects',
                           json={**PROJECT_FORM, 'student_mode': 'OPEN', 'student_slots': 5},
                           headers=instructor.headers)
    assert response.status_code == 201
    assert response.get_json()['student_slots'] is None


def test_no_students_project_clears_student_fields(client, instructor):
    response = client.post('/api/instructor/projects',
                           json={**PROJECT_FORM, 'required_skills': 'C, Python', 'expected_outcomes': 'A paper'},
                           headers=instructor.headers)
    body = response.get_json()
    assert body['student_mode'] == 'NO_STUDENTS'
    assert body['required_skills'] is None
    assert body['expected_outcomes'] == 'A paper'


def test_request_to_closed_project(client, student, make_project):
    project_id = make_project(mode=StudentMode.NO_STUDENTS)
    response = _request(client, student, project_id)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'This project is not accepting students.'


def test_request_with_no_slots_left(client, student, make_project):
    project_id = make_project(slots=0)
    response = _request(client, student, project_id)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'No slots available.'


def test_duplicate_request_rejected(client, student, make_project):
    project_id = make_project(slots=3)
    assert _request(client, student, project_id).status_code == 201
    assert _request(client, student, project_id).status_code == 400


def test_accept_claims_slot_and_adds_member(app, client, fetch, instructor, student, make_project):
    project_id = make_project(slots=1)
    request_id = _request(client, student, project_id).get_json()['request']['request_id']

    response = _respond(client, instructor, request_id)
    assert response.status_code == 200
    assert response.get_json()['request']['status'] == 'ACCEPTED'
    assert fetch(Project, project_id).student_slots == 0
    assert _members(app, project_id) == 1


def test_accept_without_slot_rolls_back(app, client, fetch, instructor, student, second_student, make_project):
    project_id = make_project(slots=1)
    first = _request(client, student, project_id).get_json()['request']['request_id']
    second = _request(client, second_student, project_id).get_json()['request']['request_id']

    assert _respond(client, instructor, first).status_code == 200
    response = _respond(client, instructor, second)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'No slots available.'

    assert fetch(ProjectRequest, second).status == RequestStatus.PENDING
    assert fetch(Project, project_id).student_slots == 0
    assert _members(app, project_id) == 1


def test_accepting_existing_member_is_idempotent(app, client, fetch, instructor, student, make_project):
    project_id = make_project(slots=2)
    with app.app_context():
        db.session.add(ProjectMember(project_id=project_id, student_id=student.id))
        join_request = ProjectRequest(project_id=project_id, student_id=student.id, status=RequestStatus.PENDING)
        db.session.add(join_request)
        db.session.commit()
        request_id = join_request.id

    response = _respond(client, instructor, request_id)
    assert response.status_code == 200
    assert fetch(Project, project_id).student_slots == 2
    assert _members(app, project_id) == 1


def test_open_project_accept_leaves_slots_alone(app, client, fetch, instructor, student, make_project):
    project_id = make_project(mode=StudentMode.OPEN)
    request_id = _request(client, student, project_id).get_json()['request']['request_id']

    assert _respond(client, instructor, request_id).status_code == 200
    assert fetch(Project, project_id).student_slots is None
    assert _members(app, project_id) == 1


def test_reject_changes_status_only(app, client, fetch, instructor, student, make_project):
    project_id = make_project(slots=1)
    request_id = _request(client, student, project_id).get_json()['request']['request_id']

    assert _respond(client, instructor, request_id, 'REJECT').status_code == 200
    assert fetch(ProjectRequest, request_id).status == RequestStatus.REJECTED
    assert fetch(Project, project_id).student_slots == 1
    assert _members(app, project_id) == 0


def test_processed_request_cannot_be_answered_again(client, instructor, student, make_project):
    project_id = make_project(slots=2)
    request_id = _request(client, student, project_id).get_json()['request']['request_id']
    assert _respond(client, instructor, request_id, 'REJECT').status_code == 200
    assert _respond(client, instructor, request_id, 'ACCEPT').status_code == 400


def test_only_owner_responds(client, make_user, advisor, student, make_project):
    project_id = make_project(slots=2)
    request_id = _request(client, student, project_id).get_json()['request']['request_id']
    other = make_user(Role.INSTRUCTOR, advisor=advisor)
    assert _respond(client, other, request_id).status_code == 403


def test_pending_requests_listing(client, instructor, student, make_project):
    project_id = make_project(slots=2)
    _request(client, student, project_id)

    response = client.get(f'/api/instructor/projects/requests?project_id={project_id}', headers=instructor.headers)
    assert response.status_code == 200
    assert [r['student']['user_id'] for r in response.get_json()] == [student.id]


def test_browse_shows_my_status(client, instructor, student, make_project):
    from models import ProjectVisibility
    requested = make_project(slots=2)
    untouched = make_project(mode=StudentMode.OPEN)
    make_project(visibility=ProjectVisibility.PRIVATE)
    _request(client, student, requested)

    response = client.get('/api/student/projects/browse', headers=student.headers)
    statuses = {p['project_id']: p['my_status'] for p in response.get_json()}
    assert statuses == {requested: 'PENDING', untouched: None}
