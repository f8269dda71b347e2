import os

from dotenv import load_dotenv

# Load environment variables from .env before the classes read them
load_dotenv()


def get_database_uri():
    """DATABASE_URL wins; otherwise build a MySQL URL from the MYSQL_* variables"""
    url = os.environ.get('DATABASE_URL')
    if url:
        return url
    user = os.environ.get('MYSQL_USER', 'admin')
    password = os.environ.get('MYSQL_PASSWORD', 'admin123')
    host = os.environ.get('DATABASE_HOST', 'localhost')
    port = os.environ.get('DATABASE_PORT', '3306')
    database = os.environ.get('MYSQL_DATABASE', 'brewery_inventory_db')
    return f"mysql+pymysql://{user}:{password}@{host}:{port}/{database}"


class Config:
    """Base configuration"""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database
    SQLALCHEMY_DATABASE_URI = get_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Authentication
    JWT_SECRET = os.environ.get('JWT_SECRET') or 'dev-jwt-secret-change-in-production'
    JWT_ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')
    JWT_ISSUER = os.environ.get('JWT_ISSUER')
    JWT_AUDIENCE = os.environ.get('JWT_AUDIENCE')
    ADMIN_ROLE = os.environ.get('ADMIN_ROLE', 'admin')
    PERMISSION_CACHE_TTL = int(os.environ.get('PERMISSION_CACHE_TTL', 300))

    # Redis backs the permission cache; unset disables caching
    REDIS_URL = os.environ.get('REDIS_URL')

    # Pagination
    DEFAULT_PAGE_SIZE = int(os.environ.get('DEFAULT_PAGE_SIZE', 20))
    MAX_PAGE_SIZE = int(os.environ.get('MAX_PAGE_SIZE', 100))

    # Stock reconciliation
    NEAR_EXPIRY_DEFAULT_DAYS = int(os.environ.get('NEAR_EXPIRY_DEFAULT_DAYS', 30))

    # flask-restx: keep error bodies as rendered by our handlers
    RESTX_ERROR_404_HELP = False

    # CORS
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    # Use in-memory SQLite for testing
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET = 'test-jwt-secret-with-at-least-32-characters'
    JWT_ISSUER = None
    JWT_AUDIENCE = None
    PERMISSION_CACHE_TTL = 60
    REDIS_URL = None


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
