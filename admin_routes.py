from flask import Blueprint, g, jsonify, request

import identity
import subjects as subject_repo
from models import Log, Question, Subject, User, db
from utils import add_log, get_payload, role_required

admin_bp = Blueprint('admin', __name__)

# API Routes - Subjects
@admin_bp.route('/api/subjects', methods=['GET'])
@role_required('subjects')
def api_list_subjects():
    out = [subject_repo.serialize(s) for s in subject_repo.list_all()]
    return jsonify({'ok': True, 'subjects': out})

@admin_bp.route('/api/subjects', methods=['POST'])
@role_required('subjects')
def api_create_subject():
    subject = subject_repo.create(get_payload())
    add_log(g.user.id, g.user.email, g.user.role, 'create_subject', {'subject_id': subject.id, 'name': subject.name})
    return jsonify({'ok': True, 'subject': subject_repo.serialize(subject)}), 201

@admin_bp.route('/api/subjects/<int:subject_id>', methods=['PUT'])
@role_required('subject')
def api_update_subject(subject_id):
    subject = subject_repo.update(subject_id, get_payload())
    add_log(g.user.id, g.user.email, g.user.role, 'update_subject', {'subject_id': subject.id})
    return jsonify({'ok': True, 'subject': subject_repo.serialize(subject)})

@admin_bp.route('/api/subjects/<int:subject_id>', methods=['DELETE'])
@role_required('subject')
def api_delete_subject(subject_id):
    subject_repo.delete(subject_id)
    add_log(g.user.id, g.user.email, g.user.role, 'delete_subject', {'subject_id': subject_id})
    return jsonify({'ok': True, 'msg': 'subject_deleted'})

# API Routes - Accounts
@admin_bp.route('/api/admin/qauthors', methods=['POST'])
@role_required('admin')
def api_create_qauthor():
    d = get_payload()
    user = identity.create_qauthor(d.get('email'), d.get('password'))
    add_log(g.user.id, g.user.email, g.user.role, 'create_qauthor', {'new_user': user.email})
    return jsonify({'ok': True, 'user': {'id': user.id, 'email': user.email, 'role': user.role}}), 201

@admin_bp.route('/api/admin/users', methods=['GET'])
@role_required('admin')
def api_list_users():
    q = User.query
    role = request.args.get('role')
    if role:
        q = q.filter_by(role=role.upper())
    users = q.order_by(User.created_at.desc(), User.id.desc()).all()
    out = [identity.serialize_user(u) for u in users]
    return jsonify({'ok': True, 'users': out})

@admin_bp.route('/api/admin/stats', methods=['GET'])
@role_required('admin')
def api_stats():
    by_role = dict(db.session.query(User.role, db.func.count(User.id)).group_by(User.role).all())
    per_subject = dict(
        db.session.query(Subject.name, db.func.count(Question.id))
        .outerjoin(Question, Question.subject_id == Subject.id)
        .group_by(Subject.id, Subject.name)
        .all()
    )
    return jsonify({'ok': True, 'stats': {
        'totalUsers': sum(by_role.values()),
        'totalQAuthors': by_role.get('QAUTHOR', 0),
        'totalStudents': by_role.get('STUDENT', 0),
        'totalSubjects': Subject.query.count(),
        'totalQuestions': Question.query.count(),
        'questionsPerSubject': per_subject,
    }})

@admin_bp.route('/api/admin/logs', methods=['GET'])
@role_required('admin')
def api_view_logs():
    q = Log.query
    etype = request.args.get('event_type')
    uid = request.args.get('user_id', type=int)
    if etype:
        q = q.filter_by(event_type=etype)
    if uid:
        q = q.filter_by(who_user_id=uid)
    logs = q.order_by(Log.created_at.desc(), Log.id.desc()).limit(2000).all()
    out = []
    for l in logs:
        out.append({
            "id": l.id,
            "who_user_id": l.who_user_id,
            "email": l.email,
            "role": l.role,
            "event_type": l.event_type,
            "meta": l.meta,
            "created_at": l.created_at.isoformat()
        })
    return jsonify({"ok": True, "logs": out})
