import logging
from datetime import datetime, timezone

import click
from flask import Flask, jsonify

import identity
from admin_routes import admin_bp
from auth_routes import auth_bp
from author_routes import author_bp
from config import Config
from errors import register_error_handlers
from logging_config import init_logging
from models import db
from student_routes import student_bp

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    app.config['SQLALCHEMY_DATABASE_URI'] = Config.get_database_uri()
    if test_config is not None:
        app.config.update(test_config)
    app.secret_key = app.config['SECRET_KEY']

    init_logging(app)

    # Initialize database
    db.init_app(app)

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(author_bp)
    app.register_blueprint(student_bp)

    register_error_handlers(app)
    register_commands(app)

    with app.app_context():
        init_database(app)

    # Health check (UTC server time)
    @app.route('/api/health')
    def health():
        now = datetime.now(timezone.utc)
        return jsonify({'ok': True, 'server_time_utc': now.isoformat()})

    return app


def init_database(app):
    """Create the schema and the optional bootstrap SUPERADMIN."""
    db.create_all()
    email = app.config.get('SUPERADMIN_EMAIL')
    password = app.config.get('SUPERADMIN_PASSWORD')
    if email and password:
        identity.ensure_superadmin(email, password)
        logger.info('superadmin account ensured for %s', email)


def register_commands(app):
    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        db.create_all()
        click.echo('Database initialized.')

    @app.cli.command('create-superadmin')
    @click.option('--email', prompt=True)
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    def create_superadmin_command(email, password):
        """Create the SUPERADMIN account if it does not exist."""
        user = identity.ensure_superadmin(email, password)
        click.echo(f'SUPERADMIN {user.email} (id {user.id}) ready.')


# Run the application
if __name__ == '__main__':
    create_app().run(debug=True)
