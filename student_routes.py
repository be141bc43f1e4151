from flask import Blueprint, g, jsonify

import daily_sets
import subjects as subject_repo
import tracking
from utils import add_log, get_payload, role_required

student_bp = Blueprint('student', __name__)

# API Routes - Subject selection
@student_bp.route('/api/student/subjects', methods=['GET'])
@role_required('student_subjects')
def api_student_subjects():
    return jsonify({'ok': True, 'subjects': subject_repo.selections(g.user),
                    'primarySubjectId': g.user.primary_subject_id})

@student_bp.route('/api/student/subjects', methods=['POST'])
@role_required('student_subjects')
def api_student_select_subjects():
    d = get_payload()
    result = subject_repo.select_subjects(g.user, d.get('subjectIds'), d.get('primarySubjectId'))
    add_log(g.user.id, g.user.email, g.user.role, 'select_subjects', result)
    return jsonify(dict(result, ok=True, msg='subject_selections_saved'))

# API Routes - Practice
@student_bp.route('/api/student/submit-answer', methods=['POST'])
@role_required('submit_answer')
def api_submit_answer():
    d = get_payload()
    attempt, already = tracking.submit_answer(g.user, d.get('questionId'), d.get('selectedOption'), d.get('timeSpent', 0))
    if not already:
        daily_sets.mark_progress(g.user, attempt.question_id)
        add_log(g.user.id, g.user.email, g.user.role, 'submit_answer',
                {'question_id': attempt.question_id, 'is_correct': attempt.is_correct})
    return jsonify({'ok': True, 'alreadyAttempted': already, 'attempt': tracking.serialize_attempt(attempt)})

@student_bp.route('/api/student/end-session', methods=['POST'])
@role_required('end_session')
def api_end_session():
    d = get_payload()
    summary = tracking.end_session(g.user, d.get('subjectId'), d.get('totalTime'), d.get('questionsAttempted', 0))
    return jsonify({'ok': True, 'session': summary})

@student_bp.route('/api/student/analytics', methods=['GET'])
@role_required('analytics')
def api_analytics():
    return jsonify(dict(tracking.analytics(g.user), ok=True))

# API Routes - Daily questions
@student_bp.route('/api/daily-questions', methods=['GET'])
@role_required('daily_questions')
def api_daily_questions():
    return jsonify(dict(daily_sets.get_or_create_today_set(g.user), ok=True))

@student_bp.route('/api/daily-questions', methods=['POST'])
@role_required('daily_questions')
def api_submit_daily_questions():
    d = get_payload()
    result = daily_sets.submit_set(g.user, d.get('date'), d.get('answers'))
    add_log(g.user.id, g.user.email, g.user.role, 'submit_daily_set',
            {'date': result['date'], 'score': result['score'], 'total': result['totalQuestions']})
    return jsonify(dict(result, ok=True))
