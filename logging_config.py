"""
Log setup for the Daily Dose Prep service.

Every record is stamped with the request it belongs to (``rid``) and the
signed-in user id (``uid``), so a student's practice session can be followed
through the log. ``LOG_FORMAT=json`` switches to one JSON object per line.
"""

from __future__ import annotations

import json
import logging
import time
import uuid

from flask import Flask, g, has_request_context, request, session

access_log = logging.getLogger('dailydose.access')

TEXT_FORMAT = '%(asctime)s %(levelname)-7s %(name)s rid=%(rid)s uid=%(uid)s %(message)s'


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.rid = g.get('request_id', '-')
            record.uid = session.get('user_id', '-')
        else:
            record.rid = record.uid = '-'
        return True


class JSONLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            'ts': self.formatTime(record, '%Y-%m-%dT%H:%M:%S'),
            'level': record.levelname,
            'logger': record.name,
            'rid': getattr(record, 'rid', '-'),
            'uid': getattr(record, 'uid', '-'),
            'msg': record.getMessage(),
        }
        if record.exc_info:
            line['exc'] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def init_logging(app: Flask) -> None:
    level = str(app.config.get('LOG_LEVEL', 'INFO')).upper()
    handler = logging.StreamHandler()
    handler.addFilter(RequestContextFilter())
    if app.config.get('LOG_FORMAT', 'text') == 'json':
        handler.setFormatter(JSONLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level, logging.INFO))
    # the access line below replaces werkzeug's own request log
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    @app.before_request
    def _start_request():
        g.request_id = uuid.uuid4().hex[:12]
        g.started = time.perf_counter()

    @app.after_request
    def _access_line(response):
        if request.path != '/api/health':
            elapsed = (time.perf_counter() - g.get('started', time.perf_counter())) * 1000
            access_log.info('%s %s -> %s in %.1fms', request.method, request.full_path.rstrip('?'),
                            response.status_code, elapsed)
        return response
