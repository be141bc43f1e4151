"""End-to-end flows across authoring, subject selection, daily sets and answering."""

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, PASSWORD, login, question_payload


def test_author_to_student_flow(app):
    admin = login(app.test_client(), ADMIN_EMAIL, ADMIN_PASSWORD)
    physics = admin.post('/api/subjects', json={'name': 'Physics', 'examCategory': 'JEE'}).get_json()['subject']['id']
    admin.post('/api/admin/qauthors', json={'email': 'author@test.com', 'password': PASSWORD})

    author = login(app.test_client(), 'author@test.com')
    resp = author.post('/api/questions', json=question_payload(physics))
    assert resp.status_code == 201
    q1 = resp.get_json()['question']['id']

    student = app.test_client()
    assert student.post('/api/auth/register', json={'email': 'student@test.com', 'password': PASSWORD}).status_code == 201
    login(student, 'student@test.com')
    assert student.post('/api/student/subjects',
                        json={'subjectIds': [physics], 'primarySubjectId': physics}).status_code == 200

    daily = student.get('/api/daily-questions').get_json()
    assert [q['id'] for q in daily['questions']] == [q1]
    assert daily['completed'] is False

    first = student.post('/api/student/submit-answer',
                         json={'questionId': q1, 'selectedOption': 'A', 'timeSpent': 20}).get_json()
    assert first['alreadyAttempted'] is False
    assert first['attempt']['isCorrect'] is True

    again = student.post('/api/student/submit-answer', json={'questionId': q1, 'selectedOption': 'B'}).get_json()
    assert again['alreadyAttempted'] is True
    assert again['attempt']['selectedOption'] == 'A'
    assert again['attempt']['isCorrect'] is True

    # the only question in today's set is answered, so the set is done
    daily = student.get('/api/daily-questions').get_json()
    assert daily['completed'] is True
    assert daily['score'] == 1

    # the author changing the key does not regrade the attempt
    author.put(f'/api/questions/{q1}', json={'correctOption': 'B'})
    third = student.post('/api/student/submit-answer', json={'questionId': q1, 'selectedOption': 'B'}).get_json()
    assert third['attempt']['isCorrect'] is True

    # a subject with questions cannot be deleted
    assert admin.delete(f'/api/subjects/{physics}').status_code == 409


def test_submit_answer_route_validation(student_client, make_subject, make_question, author):
    qid = make_question(make_subject(), author)
    assert student_client.post('/api/student/submit-answer',
                               json={'questionId': qid, 'selectedOption': 'Z'}).status_code == 400
    assert student_client.post('/api/student/submit-answer', json={'selectedOption': 'A'}).status_code == 400
    assert student_client.post('/api/student/submit-answer',
                               json={'questionId': 999, 'selectedOption': 'A'}).status_code == 404


def test_roles_are_enforced_per_method(author_client, admin_client, student_client):
    assert author_client.get('/api/student/analytics').status_code == 403
    assert admin_client.post('/api/student/submit-answer', json={}).status_code == 403
    assert student_client.get('/api/admin/stats').status_code == 403
    assert student_client.get('/api/admin/logs').status_code == 403


def test_head_follows_get_permissions(student_client, author_client):
    assert student_client.head('/api/daily-questions').status_code == 200
    assert student_client.head('/api/student/analytics').status_code == 200
    assert author_client.head('/api/daily-questions').status_code == 403
