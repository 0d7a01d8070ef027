import pytest
from models import Role, Enrollment, EnrollmentStatus


@pytest.fixture
def roster(make_user, advisor, make_course, make_enrollment):
    """A course with three enrolled students"""
    course_id = make_course(capacity=10)
    students = [make_user(Role.STUDENT, advisor=advisor, full_name=f'Student {n}') for n in range(3)]
    enrollment_ids = [make_enrollment(s, course_id, status=EnrollmentStatus.ENROLLED) for s in students]
    return course_id, students, enrollment_ids


def _award(client, instructor, enrollment_id, grade):
    return client.post('/api/instructor/award-grade', json={'enrollment_id': enrollment_id, 'grade': grade},
                       headers=instructor.headers)


def test_award_grade(client, fetch, instructor, roster):
    _, _, enrollment_ids = roster
    response = _award(client, instructor, enrollment_ids[0], 'a-')
    assert response.status_code == 200
    assert fetch(Enrollment, enrollment_ids[0]).grade == 'A-'


def test_no_regrading(client, fetch, instructor, roster):
    _, _, enrollment_ids = roster
    assert _award(client, instructor, enrollment_ids[0], 'B').status_code == 200

    response = _award(client, instructor, enrollment_ids[0], 'A')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Grade already awarded.'
    assert fetch(Enrollment, enrollment_ids[0]).grade == 'B'


def test_grade_requires_enrolled_status(client, fetch, instructor, student, make_course, make_enrollment):
    course_id = make_course()
    enrollment_id = make_enrollment(student, course_id, status=EnrollmentStatus.PENDING_ADVISOR_APPROVAL)

    response = _award(client, instructor, enrollment_id, 'A')
    assert response.status_code == 400
    assert fetch(Enrollment, enrollment_id).grade is None


def test_grade_outside_scheme_rejected(client, instructor, roster):
    _, _, enrollment_ids = roster
    response = _award(client, instructor, enrollment_ids[0], 'Z')
    assert response.status_code == 400


def test_only_course_instructor_grades(client, make_user, advisor, roster):
    _, _, enrollment_ids = roster
    other = make_user(Role.INSTRUCTOR, advisor=advisor)
    assert _award(client, other, enrollment_ids[0], 'A').status_code == 403


def test_grading_window_closed(client, admin, instructor, roster):
    _, _, enrollment_ids = roster
    client.post('/api/admin/toggle-grading', json={'is_open': False}, headers=admin.headers)

    response = _award(client, instructor, enrollment_ids[0], 'A')
    assert response.status_code == 403


def test_validate_rows_three_valid_one_invalid(client, instructor, roster):
    course_id, students, _ = roster
    rows = [
        {'email': students[0].email, 'name': 'Student 0', 'grade': 'A'},
        {'email': students[1].email, 'grade': 'B'},
        {'email': students[2].email, 'grade': 'C-'},
        {'email': students[0].email, 'grade': 'Q'},
    ]
    response = client.post('/api/instructor/validate-grades-csv', json={'course_id': course_id, 'data': rows},
                           headers=instructor.headers)
    assert response.status_code == 200
    body = response.get_json()
    assert len(body['valid_rows']) == 3
    assert len(body['invalid_rows']) == 1
    assert body['invalid_rows'][0]['row_number'] == 5
    assert 'Invalid grade' in body['invalid_rows'][0]['error']


def test_validate_csv_text(client, instructor, roster):
    course_id, students, enrollment_ids = roster
    csv_text = (
        'Email,Name,Grade\n'
        f'{students[0].email},Student 0,A\n'
        'ghost@iitrpr.ac.in,Ghost,B\n'
    )
    response = client.post('/api/instructor/validate-grades', json={'course_id': course_id, 'data': csv_text},
                           headers=instructor.headers)
    body = response.get_json()
    assert [row['enrollment_id'] for row in body['valid_rows']] == [enrollment_ids[0]]
    assert body['invalid_rows'] == [{'row_number': 3, 'error': 'No enrolled student found with email "ghost@iitrpr.ac.in".'}]


def test_validate_respects_valid_grades_subset(client, instructor, roster):
    course_id, students, _ = roster
    rows = [{'email': students[0].email, 'grade': 'C'}, {'email': students[1].email, 'grade': 'A'}]
    body = client.post('/api/instructor/validate-grades-csv',
                       json={'course_id': course_id, 'data': rows, 'valid_grades': ['A', 'B', 'ZZ']},
                       headers=instructor.headers).get_json()
    assert len(body['valid_rows']) == 1
    assert body['invalid_rows'][0]['row_number'] == 2


def test_mass_submit_requires_confirmation(client, fetch, instructor, roster):
    course_id, _, enrollment_ids = roster
    grades = [{'enrollment_id': enrollment_ids[0], 'grade': 'A'}]
    response = client.post('/api/instructor/submit-mass-grades', json={'course_id': course_id, 'grades': grades},
                           headers=instructor.headers)
    assert response.status_code == 400
    assert fetch(Enrollment, enrollment_ids[0]).grade is None


def test_mass_submit_applies_batch(client, fetch, instructor, roster):
    course_id, _, enrollment_ids = roster
    grades = [{'enrollment_id': eid, 'grade': grade} for eid, grade in zip(enrollment_ids, ['A', 'B', 'C'])]
    response = client.post('/api/instructor/submit-mass-grades',
                           json={'course_id': course_id, 'grades': grades, 'confirm': True},
                           headers=instructor.headers)
    assert response.status_code == 200
    assert response.get_json()['count'] == 3
    assert [fetch(Enrollment, eid).grade for eid in enrollment_ids] == ['A', 'B', 'C']


def test_mass_submit_rolls_back_on_bad_row(client, fetch, instructor, roster, student, make_course, make_enrollment):
    course_id, _, enrollment_ids = roster
    foreign = make_enrollment(student, make_course(code='CS999', slot='Z'), status=EnrollmentStatus.ENROLLED)
    grades = [
        {'enrollment_id': enrollment_ids[0], 'grade': 'A'},
        {'enrollment_id': enrollment_ids[1], 'grade': 'B'},
        {'enrollment_id': foreign, 'grade': 'C'},
    ]
    response = client.post('/api/instructor/submit-mass-grades',
                           json={'course_id': course_id, 'grades': grades, 'confirm': True},
                           headers=instructor.headers)
    assert response.status_code == 400
    assert 'Row 3' in response.get_json()['error']
    assert fetch(Enrollment, enrollment_ids[0]).grade is None
    assert fetch(Enrollment, enrollment_ids[1]).grade is None
    assert fetch(Enrollment, foreign).grade is None


def test_course_students_csv_export(client, instructor, roster):
    course_id, students, _ = roster
    response = client.get(f'/api/instructor/course-students/{course_id}?format=csv', headers=instructor.headers)
    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    lines = response.get_data(as_text=True).strip().splitlines()
    assert lines[0] == 'email,name,entry_no,grade'
    assert len(lines) == 4


def test_validate_accepts_legacy_rows_key(client, instructor, roster):
    course_id, students, _ = roster
    body = client.post('/api/instructor/validate-grades-csv',
                       json={'course_id': course_id, 'rows': [{'email': students[0].email, 'grade': 'A'}]},
                       headers=instructor.headers).get_json()
    assert len(body['valid_rows']) == 1


def test_validate_flags_already_graded_rows(client, instructor, roster):
    course_id, students, enrollment_ids = roster
    assert _award(client, instructor, enrollment_ids[0], 'B').status_code == 200

    rows = [{'email': students[0].email, 'grade': 'A'}, {'email': students[1].email, 'grade': 'A'}]
    body = client.post('/api/instructor/validate-grades-csv', json={'course_id': course_id, 'data': rows},
                       headers=instructor.headers).get_json()
    assert [row['enrollment_id'] for row in body['valid_rows']] == [enrollment_ids[1]]
    assert body['invalid_rows'] == [{'row_number': 2, 'error': 'Grade already awarded.'}]


def test_mass_submit_rejects_non_integer_enrollment_id(client, fetch, instructor, roster):
    course_id, _, enrollment_ids = roster
    grades = [{'enrollment_id': enrollment_ids[0], 'grade': 'A'}, {'enrollment_id': {'x': 1}, 'grade': 'B'}]
    response = client.post('/api/instructor/submit-mass-grades',
                           json={'course_id': course_id, 'grades': grades, 'confirm': True},
                           headers=instructor.headers)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Row 2: Invalid enrollment_id'
    assert fetch(Enrollment, enrollment_ids[0]).grade is None


def test_validate_rejects_non_integer_course_id(client, instructor, roster):
    response = client.post('/api/instructor/validate-grades-csv', json={'course_id': [1], 'data': []},
                           headers=instructor.headers)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid course_id'


def test_co_instructor_sees_roster_but_cannot_grade(client, fetch, make_user, advisor, student, make_course,
                                                    make_enrollment):
    co_instructor = make_user(Role.INSTRUCTOR, advisor=advisor)
    course_id = make_course(co_instructors=[co_instructor])
    enrollment_id = make_enrollment(student, course_id, status=EnrollmentStatus.ENROLLED)

    roster = client.get(f'/api/instructor/course-students/{course_id}', headers=co_instructor.headers)
    assert roster.status_code == 200
    assert [e['enrollment_id'] for e in roster.get_json()] == [enrollment_id]

    response = _award(client, co_instructor, enrollment_id, 'A')
    assert response.status_code == 403
    assert response.get_json()['error'] == 'Only the course coordinator can award grades.'
    assert fetch(Enrollment, enrollment_id).grade is None

    response = client.post('/api/instructor/validate-grades-csv',
                           json={'course_id': course_id, 'data': [{'email': student.email, 'grade': 'A'}]},
                           headers=co_instructor.headers)
    assert response.status_code == 403


def test_unrelated_instructor_cannot_view_roster(client, make_user, advisor, roster):
    course_id, _, _ = roster
    other = make_user(Role.INSTRUCTOR, advisor=advisor)
    response = client.get(f'/api/instructor/course-students/{course_id}', headers=other.headers)
    assert response.status_code == 403
