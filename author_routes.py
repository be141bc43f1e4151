from flask import Blueprint, g, jsonify, request

import questions as question_repo
import subjects as subject_repo
from errors import AuthorizationError, ValidationError
from utils import add_log, get_payload, role_required

author_bp = Blueprint('author', __name__)

# API Routes - Question Management
@author_bp.route('/api/questions', methods=['GET'])
@role_required('questions')
def api_list_questions():
    """Subject listing for any role; without ?subject, SUPERADMIN sees all and QAUTHOR their own."""
    user = g.user
    subject_id = request.args.get('subject', type=int)
    if subject_id is not None:
        subject_repo.get(subject_id)
        limit = request.args.get('limit', type=int)
        if limit is not None and not 1 <= limit <= question_repo.MAX_SUBJECT_LIMIT:
            raise ValidationError('bad_limit', f'limit must be between 1 and {question_repo.MAX_SUBJECT_LIMIT}', ['limit'])
        rows = question_repo.list_by_subject(subject_id, limit)
    elif user.role == 'SUPERADMIN':
        rows = question_repo.list_all()
    elif user.role == 'QAUTHOR':
        rows = question_repo.list_by_owner(user.id)
    else:
        raise AuthorizationError('forbidden', 'a subject filter is required')

    shape = question_repo.serialize_public if user.role == 'STUDENT' else question_repo.serialize
    out = [shape(q) for q in rows]
    body = {'ok': True, 'questions': out, 'total': len(out)}
    if subject_id is not None:
        body['subjectId'] = subject_id
    return jsonify(body)

@author_bp.route('/api/questions', methods=['POST'])
@role_required('questions')
def api_create_question():
    q = question_repo.create(get_payload(), g.user.id)
    add_log(g.user.id, g.user.email, g.user.role, 'create_question', {'question_id': q.id, 'subject_id': q.subject_id})
    return jsonify({'ok': True, 'question': question_repo.serialize(q)}), 201

@author_bp.route('/api/questions/<int:question_id>', methods=['PUT'])
@role_required('question')
def api_update_question(question_id):
    q = question_repo.update(question_id, get_payload(), g.user.id)
    add_log(g.user.id, g.user.email, g.user.role, 'update_question', {'question_id': q.id})
    return jsonify({'ok': True, 'question': question_repo.serialize(q)})

@author_bp.route('/api/questions/<int:question_id>', methods=['DELETE'])
@role_required('question')
def api_delete_question(question_id):
    question_repo.delete(question_id, g.user.id)
    add_log(g.user.id, g.user.email, g.user.role, 'delete_question', {'question_id': question_id})
    return jsonify({'ok': True, 'msg': 'question_deleted'})
