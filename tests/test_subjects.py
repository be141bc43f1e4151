"""Tests for subject management and student subject selection."""

import pytest


class TestAdminSubjects:
    def test_create_and_list(self, admin_client):
        resp = admin_client.post('/api/subjects', json={'name': 'Physics', 'examCategory': 'jee',
                                                        'description': 'Mechanics and more'})
        assert resp.status_code == 201
        assert resp.get_json()['subject']['examCategory'] == 'JEE'
        names = [s['name'] for s in admin_client.get('/api/subjects').get_json()['subjects']]
        assert names == ['Physics']

    def test_duplicate_name_is_409(self, admin_client):
        admin_client.post('/api/subjects', json={'name': 'Physics'})
        assert admin_client.post('/api/subjects', json={'name': 'physics'}).status_code == 409

    def test_missing_name_is_400(self, admin_client):
        assert admin_client.post('/api/subjects', json={'examCategory': 'JEE'}).status_code == 400

    def test_bad_category_is_400(self, admin_client):
        resp = admin_client.post('/api/subjects', json={'name': 'Physics', 'examCategory': 'GRE'})
        assert resp.status_code == 400
        assert resp.get_json()['fields'] == ['examCategory']

    def test_update(self, admin_client, make_subject):
        sid = make_subject()
        resp = admin_client.put(f'/api/subjects/{sid}', json={'name': 'Physics II', 'description': 'x'})
        assert resp.status_code == 200
        assert resp.get_json()['subject']['name'] == 'Physics II'

    def test_update_missing_is_404(self, admin_client):
        assert admin_client.put('/api/subjects/42', json={'name': 'X'}).status_code == 404

    def test_update_to_taken_name_is_409(self, admin_client, make_subject):
        make_subject('Physics')
        sid = make_subject('Chemistry')
        assert admin_client.put(f'/api/subjects/{sid}', json={'name': 'Physics'}).status_code == 409

    def test_delete_empty_subject(self, admin_client, make_subject):
        sid = make_subject()
        assert admin_client.delete(f'/api/subjects/{sid}').status_code == 200
        assert admin_client.get('/api/subjects').get_json()['subjects'] == []

    def test_delete_subject_with_questions_is_409(self, admin_client, make_subject, make_question, author):
        sid = make_subject()
        make_question(sid, author)
        resp = admin_client.delete(f'/api/subjects/{sid}')
        assert resp.status_code == 409
        assert resp.get_json()['msg'] == 'subject_has_questions'

    def test_non_admin_writes_forbidden(self, author_client, student_client, make_subject):
        sid = make_subject()
        assert author_client.post('/api/subjects', json={'name': 'Biology'}).status_code == 403
        assert student_client.delete(f'/api/subjects/{sid}').status_code == 403
        assert student_client.get('/api/subjects').status_code == 200

    def test_stats(self, admin_client, make_subject, make_question, author, student):
        sid = make_subject()
        make_question(sid, author)
        stats = admin_client.get('/api/admin/stats').get_json()['stats']
        assert stats['totalQAuthors'] == 1
        assert stats['totalStudents'] == 1
        assert stats['totalUsers'] == 3
        assert stats['questionsPerSubject'] == {'Physics': 1}

    def test_create_qauthor(self, admin_client, client):
        resp = admin_client.post('/api/admin/qauthors', json={'email': 'new@author.com', 'password': 'secret123'})
        assert resp.status_code == 201
        assert resp.get_json()['user']['role'] == 'QAUTHOR'
        assert client.post('/api/auth/login', json={'email': 'new@author.com',
                                                    'password': 'secret123'}).status_code == 200

    def test_logs_record_admin_actions(self, admin_client):
        admin_client.post('/api/subjects', json={'name': 'Physics'})
        logs = admin_client.get('/api/admin/logs?event_type=create_subject').get_json()['logs']
        assert len(logs) == 1
        assert logs[0]['meta']['name'] == 'Physics'


class TestStudentSelection:
    def test_select_and_read_back(self, student_client, make_subject):
        physics = make_subject('Physics')
        chemistry = make_subject('Chemistry')
        resp = student_client.post('/api/student/subjects',
                                   json={'subjectIds': [physics, chemistry], 'primarySubjectId': physics})
        assert resp.status_code == 200
        body = student_client.get('/api/student/subjects').get_json()
        assert body['primarySubjectId'] == physics
        assert {s['subjectId']: s['isPrimary'] for s in body['subjects']} == {physics: True, chemistry: False}

    def test_primary_subject_is_write_once(self, student_client, make_subject):
        physics = make_subject('Physics')
        chemistry = make_subject('Chemistry')
        student_client.post('/api/student/subjects', json={'subjectIds': [physics], 'primarySubjectId': physics})
        resp = student_client.post('/api/student/subjects',
                                   json={'subjectIds': [chemistry], 'primarySubjectId': chemistry})
        assert resp.status_code == 409
        assert resp.get_json()['msg'] == 'primary_subject_locked'
        assert student_client.get('/api/auth/me').get_json()['user']['primarySubjectId'] == physics

    def test_secondary_subjects_can_change(self, student_client, make_subject):
        physics = make_subject('Physics')
        chemistry = make_subject('Chemistry')
        student_client.post('/api/student/subjects', json={'subjectIds': [physics], 'primarySubjectId': physics})
        resp = student_client.post('/api/student/subjects',
                                   json={'subjectIds': [physics, chemistry], 'primarySubjectId': physics})
        assert resp.status_code == 200
        assert len(student_client.get('/api/student/subjects').get_json()['subjects']) == 2

    @pytest.mark.parametrize('payload', [
        {'subjectIds': [], 'primarySubjectId': 1},
        {'subjectIds': [1]},
        {'subjectIds': [1], 'primarySubjectId': 2},
        {'subjectIds': [1, 99], 'primarySubjectId': 1},
    ])
    def test_invalid_selection_is_400(self, student_client, make_subject, payload):
        make_subject('Physics')
        assert student_client.post('/api/student/subjects', json=payload).status_code == 400

    def test_only_students_select(self, author_client, make_subject):
        sid = make_subject()
        resp = author_client.post('/api/student/subjects', json={'subjectIds': [sid], 'primarySubjectId': sid})
        assert resp.status_code == 403
