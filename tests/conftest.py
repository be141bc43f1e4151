"""
Test fixtures for Daily Dose Prep.

Every test gets a fresh app on in-memory SQLite with a bootstrap SUPERADMIN,
plus helpers to create accounts, subjects and questions and to log in.
"""

from __future__ import annotations

from contextlib import nullcontext
from datetime import date

import pytest
from flask import has_app_context

ADMIN_EMAIL = 'admin@dailydoseprep.test'
ADMIN_PASSWORD = 'adminpass'
PASSWORD = 'secret123'


def _app_context(app):
    return nullcontext() if has_app_context() else app.app_context()


@pytest.fixture
def app():
    from app import create_app
    from config import TestingConfig

    cfg = {k: getattr(TestingConfig, k) for k in dir(TestingConfig) if k.isupper()}
    cfg.update({
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SUPERADMIN_EMAIL': ADMIN_EMAIL,
        'SUPERADMIN_PASSWORD': ADMIN_PASSWORD,
        'DAILY_SET_SIZE': 10,
        'DAY_BOUNDARY_TZ': 'UTC',
    })
    app = create_app(cfg)
    yield app

    from models import db
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """App context for calling domain modules directly."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def day():
    return date(2026, 3, 10)


@pytest.fixture
def make_user(app):
    """make_user(role, email) -> user id."""
    import identity

    def _make(role='STUDENT', email=None, password=PASSWORD):
        email = email or f'{role.lower()}{_make.n}@test.com'
        _make.n += 1
        with _app_context(app):
            if role == 'STUDENT':
                user = identity.register_student(email, password)
            elif role == 'QAUTHOR':
                user = identity.create_qauthor(email, password)
            else:
                user = identity.ensure_superadmin(email, password)
            return user.id
    _make.n = 1
    return _make


@pytest.fixture
def make_subject(app):
    import subjects

    def _make(name='Physics', category='JEE'):
        with _app_context(app):
            return subjects.create({'name': name, 'examCategory': category}).id
    return _make


def question_payload(subject_id, **overrides):
    data = {
        'title': 'Newton',
        'content': 'What is the SI unit of force?',
        'optionA': 'Newton',
        'optionB': 'Joule',
        'optionC': 'Watt',
        'optionD': 'Pascal',
        'correctOption': 'A',
        'explanation': 'Force is measured in newtons.',
        'difficulty': 'EASY',
        'examCategory': 'JEE',
        'subjectId': subject_id,
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_question(app):
    """make_question(subject_id, author_id, **overrides) -> question id."""
    import questions

    def _make(subject_id, author_id, **overrides):
        with _app_context(app):
            return questions.create(question_payload(subject_id, **overrides), author_id).id
    return _make


def login(client, email, password=PASSWORD):
    resp = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def admin_client(app):
    return login(app.test_client(), ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def author(make_user):
    return make_user('QAUTHOR', 'author@test.com')


@pytest.fixture
def author_client(app, author):
    return login(app.test_client(), 'author@test.com')


@pytest.fixture
def student(make_user):
    return make_user('STUDENT', 'student@test.com')


@pytest.fixture
def student_client(app, student):
    return login(app.test_client(), 'student@test.com')
