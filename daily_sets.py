"""
Daily question sets.

A student gets at most one set per calendar day: up to ``DAILY_SET_SIZE``
questions from their primary subject they have never attempted, oldest
first. The set is stored the first time it is asked for and returned as-is
on every later call that day.
"""

from __future__ import annotations

import logging
from datetime import date as date_cls

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

import questions as question_repo
import tracking
from errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from models import OPTIONS, DailyQuestionSet, Question, StudentAttempt, User, db
from utils import today

logger = logging.getLogger(__name__)

STATUS_OK = 'ok'
STATUS_NO_SUBJECT = 'no_subject_selected'
STATUS_EXHAUSTED = 'bank_exhausted'


def _set_size(size=None) -> int:
    return size or current_app.config.get('DAILY_SET_SIZE', 10)


def find_set(student_id: int, day):
    return DailyQuestionSet.query.filter_by(student_id=student_id, date=day).first()


def select_unseen(student_id: int, subject_id: int, size: int) -> list[Question]:
    seen = select(StudentAttempt.question_id).where(StudentAttempt.student_id == student_id)
    return (Question.query
            .filter(Question.subject_id == subject_id, Question.id.notin_(seen))
            .order_by(Question.created_at.asc(), Question.id.asc())
            .limit(size)
            .all())


def _attempts_for(student_id: int, question_ids) -> dict:
    if not question_ids:
        return {}
    rows = StudentAttempt.query.filter(StudentAttempt.student_id == student_id,
                                       StudentAttempt.question_id.in_(question_ids)).all()
    return {a.question_id: a for a in rows}


def _live_questions(qset: DailyQuestionSet) -> list[Question]:
    """Questions of the set that still exist, in stored order."""
    ids = list(qset.question_ids or [])
    if not ids:
        return []
    by_id = {q.id: q for q in Question.query.filter(Question.id.in_(ids)).all()}
    return [by_id[i] for i in ids if i in by_id]


def _result(qset: DailyQuestionSet) -> dict:
    live = _live_questions(qset)
    ids = [q.id for q in live]
    answered = _attempts_for(qset.student_id, ids)
    return {
        'status': STATUS_OK,
        'date': qset.date.isoformat(),
        'subjectId': qset.subject_id,
        'questions': [question_repo.serialize_public(q) for q in live],
        'answeredQuestionIds': [i for i in ids if i in answered],
        'completed': qset.completed,
        'score': qset.score,
    }


def get_or_create_today_set(student: User, day=None, size=None) -> dict:
    day = day or today()
    existing = find_set(student.id, day)
    if existing is not None:
        if not existing.completed:
            _finalize(existing, require_all=True)
        return _result(existing)

    if not student.primary_subject_id:
        return {
            'status': STATUS_NO_SUBJECT,
            'date': day.isoformat(),
            'questions': [],
            'completed': False,
            'message': 'Select a primary subject to receive daily questions.',
        }

    picked = select_unseen(student.id, student.primary_subject_id, _set_size(size))
    if not picked:
        return {
            'status': STATUS_EXHAUSTED,
            'date': day.isoformat(),
            'questions': [],
            'completed': True,
            'message': 'Congratulations, you solved all questions posted for this subject.',
        }

    qset = DailyQuestionSet(
        student_id=student.id,
        date=day,
        subject_id=student.primary_subject_id,
        question_ids=[q.id for q in picked],
        completed=False,
    )
    db.session.add(qset)
    try:
        db.session.commit()
    except IntegrityError:
        # another request stored today's set first; that one wins
        db.session.rollback()
        qset = find_set(student.id, day)
        if qset is None:
            raise UpstreamError(details='daily set conflict without a stored set')
    else:
        logger.info('daily set for student %s on %s: %s questions', student.id, day, len(qset.question_ids))
    return _result(qset)


def _finalize(qset: DailyQuestionSet, require_all: bool) -> bool:
    # deleted questions can no longer be answered and do not hold the set open
    ids = [q.id for q in _live_questions(qset)]
    answered = _attempts_for(qset.student_id, ids)
    if require_all and any(i not in answered for i in ids):
        return False
    qset.completed = True
    qset.score = sum(1 for a in answered.values() if a.is_correct)
    db.session.commit()
    return True


def mark_progress(student: User, question_id: int, day=None) -> None:
    """Complete the day's set once every question in it has an attempt."""
    qset = find_set(student.id, day or today())
    if qset is None or qset.completed or question_id not in (qset.question_ids or []):
        return
    _finalize(qset, require_all=True)


def submit_set(student: User, date_str, answers) -> dict:
    """Grade a whole day's set in one request.

    Each answer goes through the same first-answer-wins recording as single
    submissions; the score counts the recorded answers.
    """
    try:
        day = date_cls.fromisoformat(str(date_str))
    except (TypeError, ValueError):
        raise ValidationError('invalid_submission', 'date must be YYYY-MM-DD', ['date'])
    if not isinstance(answers, list) or not all(isinstance(a, dict) for a in answers):
        raise ValidationError('invalid_submission', 'answers must be a list of objects', ['answers'])

    qset = find_set(student.id, day)
    if qset is None:
        raise NotFoundError('question_set_not_found')
    if qset.completed:
        raise ConflictError('set_already_completed')

    ids = [q.id for q in _live_questions(qset)]
    for a in answers:
        try:
            qid = int(a.get('questionId'))
        except (TypeError, ValueError):
            qid = None
        if qid not in ids:
            raise ValidationError('invalid_question_ids', 'answers reference questions outside this set', ['answers'])
        if str(a.get('selectedOption') or '').strip().upper() not in OPTIONS:
            raise ValidationError('invalid_option', 'selectedOption must be A, B, C, or D', ['answers'])

    results = []
    for a in answers:
        attempt, already = tracking.submit_answer(student, a.get('questionId'), a.get('selectedOption'),
                                                  a.get('timeSpent', 0), day=day)
        results.append(dict(tracking.serialize_attempt(attempt), alreadyAttempted=already))

    _finalize(qset, require_all=False)
    return {
        'date': day.isoformat(),
        'completed': True,
        'score': qset.score,
        'totalQuestions': len(ids),
        'results': results,
    }
