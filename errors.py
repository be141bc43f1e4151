"""
Error taxonomy and the JSON error boundary.

Handlers and domain modules raise these; ``register_error_handlers`` turns
them into ``{"ok": false, "msg": ...}`` responses. Nothing here retries.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from models import db

logger = logging.getLogger(__name__)


class AppError(Exception):
    status = 500
    msg = 'server_error'

    def __init__(self, msg: str | None = None, details: str | None = None):
        super().__init__(details or msg or self.msg)
        if msg:
            self.msg = msg
        self.details = details

    def to_dict(self) -> dict:
        body = {'ok': False, 'msg': self.msg}
        if self.details:
            body['details'] = self.details
        return body


class ValidationError(AppError):
    status = 400
    msg = 'validation_failed'

    def __init__(self, msg: str | None = None, details: str | None = None, fields: list[str] | None = None):
        super().__init__(msg, details)
        self.fields = fields or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.fields:
            body['fields'] = self.fields
        return body


class AuthError(AppError):
    status = 401
    msg = 'not_authenticated'


class InvalidCredentials(AuthError):
    msg = 'invalid_credentials'


class UserNotProvisioned(AuthError):
    """Identity exists but has no application user row. Needs an administrator."""
    status = 403
    msg = 'user_not_provisioned'


class AuthorizationError(AppError):
    status = 403
    msg = 'forbidden'


class NotFoundError(AppError):
    status = 404
    msg = 'not_found'


class ConflictError(AppError):
    status = 409
    msg = 'conflict'


class DuplicateError(ConflictError):
    msg = 'duplicate_question'


class UpstreamError(AppError):
    status = 500
    msg = 'upstream_error'


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AppError)
    def _app_error(err: AppError):
        if isinstance(err, UserNotProvisioned):
            logger.error('security: identity without user row: %s', err.details)
        elif err.status >= 500:
            logger.error('request failed: %s %s', err.msg, err.details)
        return jsonify(err.to_dict()), err.status

    @app.errorhandler(SQLAlchemyError)
    def _db_error(err: SQLAlchemyError):
        db.session.rollback()
        logger.exception('data store failure')
        return jsonify({'ok': False, 'msg': 'upstream_error'}), 500

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        return jsonify({'ok': False, 'msg': (err.name or 'error').lower().replace(' ', '_')}), err.code

    @app.errorhandler(Exception)
    def _unexpected(err: Exception):
        logger.exception('unhandled error')
        return jsonify({'ok': False, 'msg': 'server_error'}), 500
