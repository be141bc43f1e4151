"""
Attempt recording and per-day session/streak bookkeeping for students.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import NotFoundError, UpstreamError, ValidationError
from models import (OPTIONS, Question, StudentAttempt, Subject, SubjectTimeLog, User, UserSession,
                    UserSubject, db, utcnow)
from utils import today

logger = logging.getLogger(__name__)

MAX_SESSION_SECONDS = 86400


# ---- streaks & sessions ----

def apply_login_streak(user: User, day) -> None:
    """Consecutive-day logins extend the streak, same-day logins leave it, gaps reset it to 1."""
    last = user.last_login_date
    if last is not None and last >= day:
        if not user.current_streak:
            user.current_streak = 1
    elif last is not None and day - last == timedelta(days=1):
        user.current_streak = (user.current_streak or 0) + 1
    else:
        user.current_streak = 1
    user.longest_streak = max(user.longest_streak or 0, user.current_streak)
    if last is None or day > last:
        user.last_login_date = day


def session_for(user_id: int, day):
    return UserSession.query.filter_by(user_id=user_id, date=day).first()


def record_login(user: User, now=None, day=None) -> UserSession:
    """Update the streak and open (or re-open) the user's session row for the day."""
    now = now or utcnow()
    day = day or today()
    apply_login_streak(user, day)
    db.session.commit()

    sess = session_for(user.id, day)
    if sess is None:
        sess = UserSession(user_id=user.id, date=day, login_time=now, total_duration_seconds=0, is_active=True)
        db.session.add(sess)
        try:
            db.session.commit()
            return sess
        except IntegrityError:
            # a concurrent login created the row first
            db.session.rollback()
            sess = session_for(user.id, day)
    sess.is_active = True
    sess.login_time = now
    db.session.commit()
    return sess


def close_session(user: User, now=None, day=None) -> None:
    sess = session_for(user.id, day or today())
    if sess is not None and sess.is_active:
        sess.is_active = False
        sess.logout_time = now or utcnow()
        db.session.commit()


def end_session(user: User, subject_id, total_time, questions_attempted=0, now=None, day=None) -> dict:
    """Fold a practice session's duration into the day's total and log it against the subject."""
    now = now or utcnow()
    day = day or today()
    try:
        subject_id = int(subject_id)
        total_time = int(total_time)
    except (TypeError, ValueError):
        raise ValidationError('missing_fields', 'subjectId and totalTime are required', ['subjectId', 'totalTime'])
    if total_time < 0 or total_time > MAX_SESSION_SECONDS:
        raise ValidationError('bad_total_time', f'totalTime must be between 0 and {MAX_SESSION_SECONDS}', ['totalTime'])
    if db.session.get(Subject, subject_id) is None:
        raise ValidationError('invalid_subject', 'selected subject does not exist', ['subjectId'])

    sess = session_for(user.id, day)
    if sess is None:
        sess = UserSession(user_id=user.id, date=day, login_time=now - timedelta(seconds=total_time),
                           total_duration_seconds=0)
        db.session.add(sess)
    sess.total_duration_seconds = (sess.total_duration_seconds or 0) + total_time
    sess.logout_time = now
    sess.is_active = False
    db.session.commit()

    if total_time > 0:
        try:
            db.session.add(SubjectTimeLog(
                user_id=user.id,
                subject_id=subject_id,
                session_id=sess.id,
                start_time=now - timedelta(seconds=total_time),
                end_time=now,
                duration_seconds=total_time,
            ))
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.warning('subject time log insert failed for user %s', user.id, exc_info=True)

    logger.info('session ended: user %s practiced subject %s for %ss, %s questions',
                user.id, subject_id, total_time, questions_attempted or 0)
    return {
        'totalTime': total_time,
        'questionsAttempted': questions_attempted or 0,
        'subjectId': subject_id,
        'dayTotalSeconds': sess.total_duration_seconds,
    }


# ---- attempts ----

def find_attempt(student_id: int, question_id: int):
    return StudentAttempt.query.filter_by(student_id=student_id, question_id=question_id).first()


def submit_answer(student: User, question_id, selected_option, time_spent=0, now=None, day=None):
    """Record the student's one and only answer to a question.

    Returns ``(attempt, already_attempted)``. A repeat submission hands back
    the first recorded attempt untouched.
    """
    try:
        question_id = int(question_id)
    except (TypeError, ValueError):
        raise ValidationError('missing_fields', 'questionId is required', ['questionId'])
    option = str(selected_option or '').strip().upper()
    if option not in OPTIONS:
        raise ValidationError('invalid_option', 'selectedOption must be A, B, C, or D', ['selectedOption'])
    try:
        time_spent = int(time_spent or 0)
    except (TypeError, ValueError):
        raise ValidationError('bad_types', 'timeSpent must be an integer', ['timeSpent'])
    if time_spent < 0:
        raise ValidationError('bad_types', 'timeSpent must not be negative', ['timeSpent'])

    question = db.session.get(Question, question_id)
    if question is None:
        raise NotFoundError('question_not_found')

    sess = session_for(student.id, day or today())
    attempt = StudentAttempt(
        student_id=student.id,
        question_id=question.id,
        subject_id=question.subject_id,
        session_id=sess.id if sess else None,
        selected_option=option,
        is_correct=(option == question.correct_option),
        time_spent_seconds=time_spent,
        attempted_at=now or utcnow(),
    )
    db.session.add(attempt)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = find_attempt(student.id, question.id)
        if existing is None:
            raise UpstreamError(details='attempt conflict without an existing row')
        logger.info('student %s already attempted question %s', student.id, question.id)
        return existing, True
    return attempt, False


def serialize_attempt(a: StudentAttempt) -> dict:
    return {
        'id': a.id,
        'questionId': a.question_id,
        'subjectId': a.subject_id,
        'selectedOption': a.selected_option,
        'isCorrect': a.is_correct,
        'timeSpentSeconds': a.time_spent_seconds,
        'attemptedAt': a.attempted_at.isoformat() if a.attempted_at else None,
    }


# ---- analytics ----

def _percent(correct: int, total: int) -> int:
    return round(correct * 100 / total) if total else 0


def analytics(user: User, day=None) -> dict:
    day = day or today()
    selections = (db.session.query(UserSubject, Subject)
                  .join(Subject, Subject.id == UserSubject.subject_id)
                  .filter(UserSubject.user_id == user.id, UserSubject.is_active.is_(True))
                  .order_by(UserSubject.selected_at.asc(), UserSubject.id.asc())
                  .all())

    if not selections:
        return {
            'subjects': [],
            'sessionData': {
                'currentStreak': user.current_streak or 0,
                'longestStreak': user.longest_streak or 0,
                'todayTimeSpent': 0,
                'totalTimeSpent': 0,
                'totalQuestionsAnswered': 0,
                'overallScore': 0,
            },
            'message': 'No subjects selected. Please select subjects to view analytics.',
        }

    subject_ids = [s.id for _, s in selections]
    attempts = StudentAttempt.query.filter_by(student_id=user.id).all()

    today_sess = session_for(user.id, day)
    today_seconds = today_sess.total_duration_seconds if today_sess else 0
    total_seconds = (db.session.query(func.coalesce(func.sum(UserSession.total_duration_seconds), 0))
                     .filter(UserSession.user_id == user.id).scalar()) or 0

    time_by_subject = dict(
        db.session.query(SubjectTimeLog.subject_id, func.sum(SubjectTimeLog.duration_seconds))
        .join(UserSession, UserSession.id == SubjectTimeLog.session_id)
        .filter(SubjectTimeLog.user_id == user.id, UserSession.date == day)
        .group_by(SubjectTimeLog.subject_id)
        .all()
    )
    bank_sizes = dict(
        db.session.query(Question.subject_id, func.count(Question.id))
        .filter(Question.subject_id.in_(subject_ids))
        .group_by(Question.subject_id)
        .all()
    )

    out = []
    for sel, subject in selections:
        subject_attempts = [a for a in attempts if a.subject_id == subject.id]
        correct = sum(1 for a in subject_attempts if a.is_correct)
        out.append({
            'id': subject.id,
            'name': subject.name,
            'isPrimary': user.primary_subject_id == subject.id,
            'score': _percent(correct, len(subject_attempts)),
            'timeSpent': int(time_by_subject.get(subject.id) or 0) // 60,
            'questionsAttempted': len(subject_attempts),
            'totalQuestions': bank_sizes.get(subject.id, 0),
        })

    total_correct = sum(1 for a in attempts if a.is_correct)
    return {
        'subjects': out,
        'sessionData': {
            'currentStreak': user.current_streak or 0,
            'longestStreak': user.longest_streak or 0,
            'todayTimeSpent': today_seconds // 60,
            'totalTimeSpent': int(total_seconds) // 60,
            'totalQuestionsAnswered': len(attempts),
            'overallScore': _percent(total_correct, len(attempts)),
        },
    }
