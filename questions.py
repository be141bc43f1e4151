"""
Question repository.

Questions are content-addressed by ``dedupe_hash``: an MD5 digest over the
trimmed content, the four options and the subject id. Two questions that
differ by a single character hash differently; identical ones are rejected.
"""

from __future__ import annotations

import hashlib
import logging

from sqlalchemy.exc import IntegrityError

from errors import DuplicateError, NotFoundError, ValidationError
from models import DIFFICULTIES, EXAM_CATEGORIES, OPTIONS, Question, StudentAttempt, Subject, db, utcnow

logger = logging.getLogger(__name__)

MAX_SUBJECT_LIMIT = 100
YEAR_RANGE = (1900, 2100)

# payload key -> column
TEXT_FIELDS = {
    'title': 'title',
    'content': 'content',
    'optionA': 'option_a',
    'optionB': 'option_b',
    'optionC': 'option_c',
    'optionD': 'option_d',
    'explanation': 'explanation',
}


def compute_dedupe_hash(content, option_a, option_b, option_c, option_d, subject_id) -> str:
    parts = [content, option_a, option_b, option_c, option_d, subject_id]
    joined = '-'.join(str(p).strip() for p in parts)
    return hashlib.md5(joined.encode('utf-8')).hexdigest()


def _hash_of(q: Question) -> str:
    return compute_dedupe_hash(q.content, q.option_a, q.option_b, q.option_c, q.option_d, q.subject_id)


def _clean_fields(data: dict, partial: bool) -> dict:
    """Validate a create (partial=False) or update (partial=True) payload.

    Returns column -> value for the supplied fields. All problems are
    reported together in one ValidationError.
    """
    errors = []
    out = {}

    for key, column in TEXT_FIELDS.items():
        if partial and key not in data:
            continue
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            errors.append(key)
        else:
            out[column] = value.strip()

    if not partial or 'correctOption' in data:
        opt = str(data.get('correctOption') or '').strip().upper()
        if opt not in OPTIONS:
            errors.append('correctOption')
        else:
            out['correct_option'] = opt

    if not partial or 'difficulty' in data:
        diff = str(data.get('difficulty') or '').strip().upper()
        if diff not in DIFFICULTIES:
            errors.append('difficulty')
        else:
            out['difficulty'] = diff

    if data.get('examCategory') not in (None, ''):
        cat = str(data['examCategory']).strip().upper()
        if cat not in EXAM_CATEGORIES:
            errors.append('examCategory')
        else:
            out['exam_category'] = cat

    if not partial or 'subjectId' in data:
        try:
            subject_id = int(data.get('subjectId'))
        except (TypeError, ValueError):
            errors.append('subjectId')
        else:
            if db.session.get(Subject, subject_id) is None:
                errors.append('subjectId')
            else:
                out['subject_id'] = subject_id

    if 'year' in data:
        year = data.get('year')
        if year in (None, ''):
            out['year'] = None
        else:
            try:
                year = int(year)
            except (TypeError, ValueError):
                errors.append('year')
            else:
                if YEAR_RANGE[0] <= year <= YEAR_RANGE[1]:
                    out['year'] = year
                else:
                    errors.append('year')

    if 'source' in data:
        source = data.get('source')
        out['source'] = source.strip() if isinstance(source, str) and source.strip() else None

    if errors:
        raise ValidationError('validation_failed', 'invalid or missing: ' + ', '.join(errors), errors)
    return out


def _ensure_unique_hash(dedupe_hash: str, exclude_id=None) -> None:
    q = Question.query.filter_by(dedupe_hash=dedupe_hash)
    if exclude_id is not None:
        q = q.filter(Question.id != exclude_id)
    if q.first() is not None:
        raise DuplicateError(details='an identical question already exists for this subject')


def create(data: dict, owner_id: int) -> Question:
    fields = _clean_fields(data, partial=False)
    if 'exam_category' not in fields:
        fields['exam_category'] = db.session.get(Subject, fields['subject_id']).exam_category
    question = Question(created_by=owner_id, **fields)
    question.dedupe_hash = _hash_of(question)
    _ensure_unique_hash(question.dedupe_hash)

    db.session.add(question)
    try:
        db.session.commit()
    except IntegrityError:
        # lost a race against an identical submission
        db.session.rollback()
        raise DuplicateError(details='an identical question already exists for this subject')
    logger.info('question %s created by %s', question.id, owner_id)
    return question


def get_owned(question_id: int, owner_id: int) -> Question:
    """Owner's question, or NotFoundError; other authors' questions are indistinguishable from missing ones."""
    question = db.session.get(Question, question_id)
    if question is None or question.created_by != owner_id:
        raise NotFoundError('question_not_found')
    return question


def update(question_id: int, patch: dict, owner_id: int) -> Question:
    question = get_owned(question_id, owner_id)
    fields = _clean_fields(patch, partial=True)
    with db.session.no_autoflush:
        for column, value in fields.items():
            setattr(question, column, value)
        question.dedupe_hash = _hash_of(question)
        try:
            _ensure_unique_hash(question.dedupe_hash, exclude_id=question.id)
        except DuplicateError:
            db.session.rollback()
            raise
    question.updated_at = utcnow()
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateError(details='an identical question already exists for this subject')
    return question


def delete(question_id: int, owner_id: int) -> None:
    question = get_owned(question_id, owner_id)
    StudentAttempt.query.filter_by(question_id=question.id).delete()
    db.session.delete(question)
    db.session.commit()
    logger.info('question %s deleted by %s', question_id, owner_id)


def list_by_owner(owner_id: int) -> list[Question]:
    return Question.query.filter_by(created_by=owner_id).order_by(Question.created_at.desc(), Question.id.desc()).all()


def list_by_subject(subject_id: int, limit=None) -> list[Question]:
    q = Question.query.filter_by(subject_id=subject_id).order_by(Question.created_at.desc(), Question.id.desc())
    if limit:
        q = q.limit(min(int(limit), MAX_SUBJECT_LIMIT))
    return q.all()


def list_all() -> list[Question]:
    return Question.query.order_by(Question.created_at.desc(), Question.id.desc()).all()


def serialize_public(q: Question) -> dict:
    """Student-facing shape: no correct option, no explanation."""
    return {
        'id': q.id,
        'title': q.title,
        'content': q.content,
        'options': {'A': q.option_a, 'B': q.option_b, 'C': q.option_c, 'D': q.option_d},
        'difficulty': q.difficulty,
        'subjectId': q.subject_id,
    }


def serialize(q: Question) -> dict:
    return {
        'id': q.id,
        'title': q.title,
        'content': q.content,
        'optionA': q.option_a,
        'optionB': q.option_b,
        'optionC': q.option_c,
        'optionD': q.option_d,
        'correctOption': q.correct_option,
        'explanation': q.explanation,
        'difficulty': q.difficulty,
        'examCategory': q.exam_category,
        'subjectId': q.subject_id,
        'year': q.year,
        'source': q.source,
        'createdBy': q.created_by,
        'dedupeHash': q.dedupe_hash,
        'createdAt': q.created_at.isoformat() if q.created_at else None,
    }
