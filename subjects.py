"""Subject catalogue (SUPERADMIN-managed) and students' subject selections."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from errors import ConflictError, NotFoundError, ValidationError
from models import EXAM_CATEGORIES, Question, Subject, SubjectTimeLog, User, UserSubject, db, utcnow

logger = logging.getLogger(__name__)


def _clean_name(name) -> str:
    name = name.strip() if isinstance(name, str) else ''
    if not name:
        raise ValidationError('missing_name', 'subject name is required', ['name'])
    return name


def _clean_category(category) -> str:
    category = str(category or 'OTHER').strip().upper()
    if category not in EXAM_CATEGORIES:
        raise ValidationError('invalid_exam_category',
                              'examCategory must be one of ' + ', '.join(EXAM_CATEGORIES), ['examCategory'])
    return category


def _name_taken(name: str, exclude_id=None) -> bool:
    q = Subject.query.filter(db.func.lower(Subject.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Subject.id != exclude_id)
    return q.first() is not None


def get(subject_id: int) -> Subject:
    subject = db.session.get(Subject, subject_id)
    if subject is None:
        raise NotFoundError('subject_not_found')
    return subject


def list_all() -> list[Subject]:
    return Subject.query.order_by(Subject.name.asc()).all()


def create(data: dict) -> Subject:
    name = _clean_name(data.get('name'))
    category = _clean_category(data.get('examCategory'))
    if _name_taken(name):
        raise ConflictError('subject_exists', 'a subject with this name already exists')
    subject = Subject(name=name, exam_category=category, description=(data.get('description') or '').strip() or None)
    db.session.add(subject)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('subject_exists', 'a subject with this name already exists')
    return subject


def update(subject_id: int, data: dict) -> Subject:
    subject = get(subject_id)
    name = _clean_name(data.get('name', subject.name))
    if _name_taken(name, exclude_id=subject.id):
        raise ConflictError('subject_exists', 'a subject with this name already exists')
    subject.name = name
    if 'examCategory' in data:
        subject.exam_category = _clean_category(data.get('examCategory'))
    if 'description' in data:
        subject.description = (data.get('description') or '').strip() or None
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('subject_exists', 'a subject with this name already exists')
    return subject


def delete(subject_id: int) -> None:
    """Delete a subject that no question references."""
    subject = get(subject_id)
    count = Question.query.filter_by(subject_id=subject.id).count()
    if count:
        raise ConflictError('subject_has_questions',
                            f'cannot delete subject: {count} question(s) are associated with it')
    UserSubject.query.filter_by(subject_id=subject.id).delete()
    SubjectTimeLog.query.filter_by(subject_id=subject.id).delete()
    User.query.filter_by(primary_subject_id=subject.id).update({'primary_subject_id': None})
    db.session.delete(subject)
    db.session.commit()
    logger.info('subject %s deleted', subject_id)


def question_count(subject_id: int) -> int:
    return Question.query.filter_by(subject_id=subject_id).count()


def serialize(s: Subject) -> dict:
    return {
        'id': s.id,
        'name': s.name,
        'examCategory': s.exam_category,
        'description': s.description,
        'createdAt': s.created_at.isoformat() if s.created_at else None,
    }


# ---- student selections ----

def selections(user: User) -> list[dict]:
    rows = (db.session.query(UserSubject, Subject)
            .join(Subject, Subject.id == UserSubject.subject_id)
            .filter(UserSubject.user_id == user.id, UserSubject.is_active.is_(True))
            .order_by(UserSubject.selected_at.asc(), UserSubject.id.asc())
            .all())
    return [{
        'subjectId': us.subject_id,
        'isPrimary': us.is_primary,
        'isActive': us.is_active,
        'selectedAt': us.selected_at.isoformat() if us.selected_at else None,
        'subject': serialize(s),
    } for us, s in rows]


def select_subjects(user: User, subject_ids, primary_subject_id) -> dict:
    """Replace the student's active subject list and set the primary subject.

    The primary subject is write-once: choosing a different one after the
    first choice is refused.
    """
    if not isinstance(subject_ids, list) or not subject_ids:
        raise ValidationError('missing_subjects', 'subject IDs are required', ['subjectIds'])
    try:
        subject_ids = list(dict.fromkeys(int(s) for s in subject_ids))
    except (TypeError, ValueError):
        raise ValidationError('bad_types', 'subject IDs must be integers', ['subjectIds'])
    if primary_subject_id in (None, ''):
        raise ValidationError('missing_primary_subject', 'primary subject ID is required', ['primarySubjectId'])
    try:
        primary_subject_id = int(primary_subject_id)
    except (TypeError, ValueError):
        raise ValidationError('bad_types', 'primary subject ID must be an integer', ['primarySubjectId'])
    if primary_subject_id not in subject_ids:
        raise ValidationError('primary_not_selected', 'primary subject must be one of the selected subjects',
                              ['primarySubjectId'])
    found = Subject.query.filter(Subject.id.in_(subject_ids)).count()
    if found != len(subject_ids):
        raise ValidationError('unknown_subjects', 'one or more selected subjects do not exist', ['subjectIds'])
    if user.primary_subject_id is not None and user.primary_subject_id != primary_subject_id:
        raise ConflictError('primary_subject_locked', 'the primary subject cannot be changed once chosen')

    now = utcnow()
    UserSubject.query.filter_by(user_id=user.id).update({'is_active': False})
    existing = {us.subject_id: us for us in UserSubject.query.filter_by(user_id=user.id).all()}
    for sid in subject_ids:
        us = existing.get(sid)
        if us is None:
            us = UserSubject(user_id=user.id, subject_id=sid)
            db.session.add(us)
        us.is_active = True
        us.is_primary = sid == primary_subject_id
        us.selected_at = now
    user.primary_subject_id = primary_subject_id
    db.session.commit()
    return {'selectedSubjects': len(subject_ids), 'primarySubject': primary_subject_id}
