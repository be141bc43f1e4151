import logging
from datetime import datetime
from functools import wraps
from zoneinfo import ZoneInfo

from flask import current_app, g, request, session
from sqlalchemy.exc import SQLAlchemyError

from errors import AuthError, AuthorizationError, ValidationError
from models import Log, User, db

logger = logging.getLogger(__name__)

ALL_ROLES = frozenset({'SUPERADMIN', 'QAUTHOR', 'STUDENT'})
ADMIN = frozenset({'SUPERADMIN'})
AUTHOR = frozenset({'QAUTHOR'})
STUDENT = frozenset({'STUDENT'})

# resource -> HTTP method -> roles allowed to call it
PERMISSIONS = {
    'me': {'GET': ALL_ROLES},
    'questions': {'GET': ALL_ROLES, 'POST': AUTHOR},
    'question': {'PUT': AUTHOR, 'DELETE': AUTHOR},
    'subjects': {'GET': ALL_ROLES, 'POST': ADMIN},
    'subject': {'PUT': ADMIN, 'DELETE': ADMIN},
    'admin': {'GET': ADMIN, 'POST': ADMIN},
    'student_subjects': {'GET': STUDENT, 'POST': STUDENT},
    'submit_answer': {'POST': STUDENT},
    'end_session': {'POST': STUDENT},
    'analytics': {'GET': STUDENT},
    'daily_questions': {'GET': STUDENT, 'POST': STUDENT},
}


def add_log(who_id, email, role, event_type, meta=None):
    """Persist an audit entry. A failure here is logged and never fails the request."""
    entry = Log(who_user_id=who_id, email=email, role=role, event_type=event_type, meta=meta or {})
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning('audit log write failed for %s', event_type, exc_info=True)


def current_user():
    """Resolve the session cookie to a User row, or None."""
    uid = session.get('user_id')
    if not uid:
        return None
    return db.session.get(User, uid)


def role_required(resource):
    """Decorator: 401 without a valid session, 403 when the role may not use this method."""
    allowed = PERMISSIONS[resource]

    def decorator(fn):
        @wraps(fn)
        def wrapper(*a, **kw):
            user = current_user()
            if user is None:
                raise AuthError()
            method = 'GET' if request.method == 'HEAD' else request.method
            if user.role not in allowed.get(method, ()):
                raise AuthorizationError('forbidden', f'{user.role} may not {request.method} {resource}')
            g.user = user
            return fn(*a, **kw)
        return wrapper
    return decorator


def get_payload():
    """JSON body (or form data) as a dict; 400 for anything else."""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict() if request.form else {}
    if not isinstance(data, dict):
        raise ValidationError('bad_payload', 'request body must be a JSON object')
    return data


def _day_zone():
    return ZoneInfo(current_app.config.get('DAY_BOUNDARY_TZ', 'UTC'))


def today():
    """Current calendar date in the configured day-boundary timezone."""
    return datetime.now(_day_zone()).date()
