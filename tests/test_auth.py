"""Tests for identity.py and the /api/auth routes."""

import pytest

from conftest import PASSWORD


class TestRegister:
    def test_register_student(self, client):
        resp = client.post('/api/auth/register', json={'email': ' New@Test.com ', 'password': PASSWORD})
        assert resp.status_code == 201
        user = resp.get_json()['user']
        assert user['email'] == 'new@test.com'
        assert user['role'] == 'STUDENT'
        assert user['primarySubjectId'] is None

    def test_duplicate_email_is_409(self, client):
        client.post('/api/auth/register', json={'email': 'dupe@test.com', 'password': PASSWORD})
        resp = client.post('/api/auth/register', json={'email': 'DUPE@test.com', 'password': PASSWORD})
        assert resp.status_code == 409

    @pytest.mark.parametrize('payload,msg', [
        ({'email': 'x@test.com'}, 'missing_fields'),
        ({'email': 'not-an-email', 'password': PASSWORD}, 'invalid_email'),
        ({'email': 'x@test.com', 'password': '123'}, 'password_too_short'),
        ({'email': 'x@test.com', 'password': PASSWORD, 'role': 'SUPERADMIN'}, 'invalid_role'),
    ])
    def test_invalid_registration(self, client, payload, msg):
        resp = client.post('/api/auth/register', json=payload)
        assert resp.status_code == 400
        assert resp.get_json()['msg'] == msg

    def test_cannot_self_escalate(self, client):
        resp = client.post('/api/auth/register', json={'email': 'x@test.com', 'password': PASSWORD, 'role': 'QAUTHOR'})
        assert resp.status_code == 400


class TestLogin:
    def test_login_sets_cookie_and_me_works(self, client, student):
        resp = client.post('/api/auth/login', json={'email': 'student@test.com', 'password': PASSWORD})
        assert resp.status_code == 200
        assert resp.get_json()['user'] == {'id': student, 'email': 'student@test.com', 'role': 'STUDENT'}
        me = client.get('/api/auth/me').get_json()['user']
        assert me['currentStreak'] == 1
        assert me['longestStreak'] == 1

    def test_wrong_password_is_401(self, client, student):
        resp = client.post('/api/auth/login', json={'email': 'student@test.com', 'password': 'nope-nope'})
        assert resp.status_code == 401
        assert resp.get_json()['msg'] == 'invalid_credentials'

    def test_unknown_email_is_401(self, client):
        resp = client.post('/api/auth/login', json={'email': 'ghost@test.com', 'password': PASSWORD})
        assert resp.status_code == 401

    def test_missing_fields_is_400(self, client):
        assert client.post('/api/auth/login', json={'email': 'a@b.com'}).status_code == 400

    def test_identity_without_user_row(self, app, client):
        from werkzeug.security import generate_password_hash
        from models import Credential, db
        with app.app_context():
            db.session.add(Credential(email='orphan@test.com', password_hash=generate_password_hash(PASSWORD)))
            db.session.commit()
        resp = client.post('/api/auth/login', json={'email': 'orphan@test.com', 'password': PASSWORD})
        assert resp.status_code == 403
        assert resp.get_json()['msg'] == 'user_not_provisioned'

    def test_me_requires_session(self, client):
        assert client.get('/api/auth/me').status_code == 401

    def test_logout_clears_session(self, app, student_client, student):
        import tracking
        resp = student_client.post('/api/auth/logout')
        assert resp.status_code == 200
        assert student_client.get('/api/auth/me').status_code == 401
        with app.app_context():
            from utils import today
            assert tracking.session_for(student, today()).is_active is False

    def test_bootstrap_superadmin_exists(self, admin_client):
        me = admin_client.get('/api/auth/me').get_json()['user']
        assert me['role'] == 'SUPERADMIN'

    def test_ensure_superadmin_is_idempotent(self, ctx):
        import identity
        from conftest import ADMIN_EMAIL
        from models import User
        identity.ensure_superadmin(ADMIN_EMAIL, 'whatever')
        assert User.query.filter_by(role='SUPERADMIN').count() == 1


class TestErrors:
    def test_unknown_route_is_json_404(self, client):
        resp = client.get('/api/nothing-here')
        assert resp.status_code == 404
        assert resp.get_json() == {'ok': False, 'msg': 'not_found'}

    def test_health(self, client):
        assert client.get('/api/health').get_json()['ok'] is True
