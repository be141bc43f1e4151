"""
Identity gateway: credential checks and provisioning of application users.

Credentials (email + password hash) live apart from the ``users`` table, the
same split a hosted identity provider imposes. A credential with no user row
is a provisioning fault and is reported as ``UserNotProvisioned``.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

import tracking
from errors import ConflictError, InvalidCredentials, UserNotProvisioned, ValidationError
from models import Credential, User, db

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
MIN_PASSWORD_LENGTH = 6


def normalize_email(email) -> str:
    return (email or '').strip().lower()


def _validate_new_account(email: str, password: str) -> None:
    if not email or not password:
        raise ValidationError('missing_fields', 'email and password are required',
                              [f for f, v in (('email', email), ('password', password)) if not v])
    if not EMAIL_RE.match(email):
        raise ValidationError('invalid_email', 'please enter a valid email address', ['email'])
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError('password_too_short',
                              f'password must be at least {MIN_PASSWORD_LENGTH} characters long', ['password'])


def _create_account(email, password, role: str) -> User:
    email = normalize_email(email)
    password = password or ''
    _validate_new_account(email, password)
    if Credential.query.filter_by(email=email).first():
        raise ConflictError('user_exists', 'an account with this email address already exists')

    cred = Credential(email=email, password_hash=generate_password_hash(password))
    db.session.add(cred)
    try:
        db.session.flush()
        user = User(id=cred.id, email=email, role=role, current_streak=0, longest_streak=0)
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('user_exists', 'an account with this email address already exists')
    logger.info('created %s account %s', role, email)
    return user


def register_student(email, password, role=None) -> User:
    """Public registration; only STUDENT accounts can be created this way."""
    if role not in (None, '', 'STUDENT'):
        raise ValidationError('invalid_role', 'only STUDENT accounts can be created through registration', ['role'])
    return _create_account(email, password, 'STUDENT')


def create_qauthor(email, password) -> User:
    return _create_account(email, password, 'QAUTHOR')


def ensure_superadmin(email, password) -> User:
    """Create the SUPERADMIN account unless it already exists."""
    existing = User.query.filter_by(email=normalize_email(email)).first()
    if existing:
        return existing
    return _create_account(email, password, 'SUPERADMIN')


def authenticate(email, password, now=None, day=None) -> User:
    """Check credentials, resolve the user row and open today's session.

    Raises InvalidCredentials or UserNotProvisioned.
    """
    email = normalize_email(email)
    if not email or not password:
        raise ValidationError('missing_fields', 'email and password are required')
    cred = Credential.query.filter_by(email=email).first()
    if not cred or not check_password_hash(cred.password_hash, password):
        raise InvalidCredentials()
    user = db.session.get(User, cred.id)
    if user is None:
        raise UserNotProvisioned(details=f'credential {cred.id} ({email}) has no user row')

    tracking.record_login(user, now=now, day=day)
    return user


def serialize_user(user: User) -> dict:
    return {
        'id': user.id,
        'email': user.email,
        'role': user.role,
        'primarySubjectId': user.primary_subject_id,
        'currentStreak': user.current_streak,
        'longestStreak': user.longest_streak,
        'lastLoginDate': user.last_login_date.isoformat() if user.last_login_date else None,
        'createdAt': user.created_at.isoformat() if user.created_at else None,
    }
