import os
from dotenv import load_dotenv

load_dotenv()  # loads .env if present

class Config:
    # --- Config ---
    # Prefer an explicit DATABASE_URL (the hosted Postgres instance in production)
    DATABASE_URL = os.getenv('DATABASE_URL')

    # Split-out connection settings; SQLite is the default so the app runs
    # locally without a Postgres driver.
    DB_DIALECT = os.getenv('DB_DIALECT', 'sqlite')  # 'postgres' or 'sqlite'
    DB_USER = os.getenv('DB_USER', 'postgres')
    DB_PASS = os.getenv('DB_PASS', 'postgres')
    DB_HOST = os.getenv('DB_HOST', 'localhost')
    DB_PORT = os.getenv('DB_PORT', '5432')
    DB_NAME = os.getenv('DB_NAME', 'daily_dose_prep')

    SECRET_KEY = os.getenv('FLASK_SECRET', 'dev-secret-please-change')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Logging
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')  # 'json' or 'text'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Daily question sets
    DAILY_SET_SIZE = int(os.getenv('DAILY_SET_SIZE', '10'))
    # Calendar day used for daily sets, sessions and streaks
    DAY_BOUNDARY_TZ = os.getenv('DAY_BOUNDARY_TZ', 'UTC')

    # Optional bootstrap account, created at startup when both are set
    SUPERADMIN_EMAIL = os.getenv('SUPERADMIN_EMAIL', '')
    SUPERADMIN_PASSWORD = os.getenv('SUPERADMIN_PASSWORD', '')

    @staticmethod
    def get_database_uri():
        """Build and return the database URI"""
        if Config.DATABASE_URL:
            url = Config.DATABASE_URL
            # Hosted providers hand out postgres:// URLs; SQLAlchemy wants postgresql://
            if url.startswith('postgres://'):
                url = 'postgresql://' + url[len('postgres://'):]
            return url
        if Config.DB_DIALECT.lower() in ('postgres', 'postgresql'):
            return f'postgresql+psycopg2://{Config.DB_USER}:{Config.DB_PASS}@{Config.DB_HOST}:{Config.DB_PORT}/{Config.DB_NAME}'
        # default: lightweight file-based SQLite database in project folder
        db_path = os.path.join(os.path.dirname(__file__), 'data.sqlite')
        return f'sqlite:///{db_path}'


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SUPERADMIN_EMAIL = ''
    SUPERADMIN_PASSWORD = ''
