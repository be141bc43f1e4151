from flask import Blueprint, g, jsonify, session

import identity
import tracking
from utils import add_log, current_user, get_payload, role_required

auth_bp = Blueprint('auth', __name__)

@auth_bp.route('/api/auth/register', methods=['POST'])
def api_register():
    d = get_payload()
    user = identity.register_student(d.get('email'), d.get('password'), d.get('role'))
    add_log(user.id, user.email, user.role, 'register', {})
    return jsonify({'ok': True, 'user': identity.serialize_user(user)}), 201

@auth_bp.route('/api/auth/login', methods=['POST'])
def api_login():
    d = get_payload()
    user = identity.authenticate(d.get('email'), d.get('password'))
    session.clear()
    session['user_id'] = user.id
    session.permanent = True
    add_log(user.id, user.email, user.role, 'login', {'streak': user.current_streak})
    return jsonify({'ok': True, 'user': {'id': user.id, 'email': user.email, 'role': user.role}})

@auth_bp.route('/api/auth/logout', methods=['POST'])
def api_logout():
    user = current_user()
    if user is not None:
        tracking.close_session(user)
        add_log(user.id, user.email, user.role, 'logout', {})
    session.clear()
    return jsonify({'ok': True})

@auth_bp.route('/api/auth/me', methods=['GET'])
@role_required('me')
def api_me():
    return jsonify({'ok': True, 'user': identity.serialize_user(g.user)})
