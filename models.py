from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

ROLES = ('SUPERADMIN', 'QAUTHOR', 'STUDENT')
OPTIONS = ('A', 'B', 'C', 'D')
DIFFICULTIES = ('EASY', 'MEDIUM', 'HARD')
EXAM_CATEGORIES = ('UPSC', 'JEE', 'NEET', 'SSC', 'OTHER')


def utcnow():
    """Naive UTC timestamp, matching how the DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Credential(db.Model):
    """Identity-provider record: login email and password hash only."""
    __tablename__ = 'credentials'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

class User(db.Model):
    """Application user row; shares its id with the matching Credential."""
    __tablename__ = 'users'
    id = db.Column(db.Integer, db.ForeignKey('credentials.id'), primary_key=True, autoincrement=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    role = db.Column(db.String(20), nullable=False)  # one of ROLES
    primary_subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=True)  # write-once
    current_streak = db.Column(db.Integer, nullable=False, default=0)
    longest_streak = db.Column(db.Integer, nullable=False, default=0)
    last_login_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

class Log(db.Model):
    __tablename__ = 'logs'
    id = db.Column(db.Integer, primary_key=True)
    who_user_id = db.Column(db.Integer, nullable=True)         # optional user id who performed the action
    email = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(30), nullable=True)
    event_type = db.Column(db.String(120), nullable=False)
    meta = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

class Subject(db.Model):
    __tablename__ = 'subjects'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    exam_category = db.Column(db.String(20), nullable=False, default='OTHER')
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

class Question(db.Model):
    __tablename__ = 'questions'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    option_a = db.Column(db.Text, nullable=False)
    option_b = db.Column(db.Text, nullable=False)
    option_c = db.Column(db.Text, nullable=False)
    option_d = db.Column(db.Text, nullable=False)
    correct_option = db.Column(db.String(1), nullable=False)  # 'A','B','C','D'
    explanation = db.Column(db.Text, nullable=False)
    difficulty = db.Column(db.String(10), nullable=False)
    exam_category = db.Column(db.String(20), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=True)
    source = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    dedupe_hash = db.Column(db.String(32), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

class UserSubject(db.Model):
    __tablename__ = 'user_subjects'
    __table_args__ = (db.UniqueConstraint('user_id', 'subject_id', name='uq_user_subject'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=False)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    selected_at = db.Column(db.DateTime, default=utcnow)

class StudentAttempt(db.Model):
    __tablename__ = 'student_attempts'
    # one attempt per question per student
    __table_args__ = (db.UniqueConstraint('student_id', 'question_id', name='uq_attempt_student_question'),)
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey('questions.id'), nullable=False, index=True)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey('user_sessions.id'), nullable=True)
    selected_option = db.Column(db.String(1), nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False)  # graded at submission time
    time_spent_seconds = db.Column(db.Integer, nullable=False, default=0)
    attempted_at = db.Column(db.DateTime, default=utcnow)

class UserSession(db.Model):
    __tablename__ = 'user_sessions'
    __table_args__ = (db.UniqueConstraint('user_id', 'date', name='uq_session_user_date'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    login_time = db.Column(db.DateTime, default=utcnow)
    logout_time = db.Column(db.DateTime, nullable=True)
    total_duration_seconds = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

class SubjectTimeLog(db.Model):
    __tablename__ = 'subject_time_logs'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=False)
    session_id = db.Column(db.Integer, db.ForeignKey('user_sessions.id'), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=True)
    duration_seconds = db.Column(db.Integer, nullable=False, default=0)  # 0..86400

class DailyQuestionSet(db.Model):
    __tablename__ = 'daily_question_sets'
    __table_args__ = (db.UniqueConstraint('student_id', 'date', name='uq_daily_set_student_date'),)
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=False)
    question_ids = db.Column(db.JSON, nullable=False)  # ordered list of question ids
    completed = db.Column(db.Boolean, nullable=False, default=False)
    score = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
