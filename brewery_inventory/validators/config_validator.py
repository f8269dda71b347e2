"""
Configuration Validator
Checks the loaded Flask configuration at application startup and fails fast
if any value is missing or invalid
"""

from urllib.parse import urlparse

from brewery_inventory.utils.helpers import MAX_NEAR_EXPIRY_DAYS


class ConfigurationError(ValueError):
    """Raised with every problem found, one per line"""

    def __init__(self, errors):
        self.errors = errors
        super().__init__('Configuration validation failed:\n' + '\n'.join(errors))


def is_valid_url(url: str) -> bool:
    """Validates a URL format"""
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except ValueError:
        return False


def is_valid_log_level(level) -> bool:
    return isinstance(level, str) and level.upper() in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_valid_database_uri(uri) -> bool:
    return bool(uri) and '://' in uri


def is_valid_redis_url(url) -> bool:
    if not url:
        return True
    return is_valid_url(url) and urlparse(url).scheme in ('redis', 'rediss')


def is_valid_cors_origins(origins) -> bool:
    if isinstance(origins, str):
        origins = origins.split(',')
    return all(origin.strip() == '*' or is_valid_url(origin.strip()) for origin in origins)


# Configuration validation rules
VALIDATION_RULES = {
    'SECRET_KEY': {
        'validator': lambda v: bool(v),
        'production_validator': lambda v: v and len(v) >= 32,
        'error_message': 'SECRET_KEY must be set (at least 32 characters in production)',
    },
    'JWT_SECRET': {
        'validator': lambda v: bool(v),
        'production_validator': lambda v: v and len(v) >= 32,
        'error_message': 'JWT_SECRET must be set (at least 32 characters in production)',
    },
    'JWT_ALGORITHM': {
        'validator': lambda v: v in ('HS256', 'HS384', 'HS512'),
        'error_message': 'JWT_ALGORITHM must be one of: HS256, HS384, HS512',
    },
    'SQLALCHEMY_DATABASE_URI': {
        'validator': is_valid_database_uri,
        'error_message': 'DATABASE_URL must be a SQLAlchemy database URL',
    },
    'LOG_LEVEL': {
        'validator': is_valid_log_level,
        'error_message': 'LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL',
    },
    'DEFAULT_PAGE_SIZE': {
        'validator': is_positive_int,
        'error_message': 'DEFAULT_PAGE_SIZE must be a positive integer',
    },
    'MAX_PAGE_SIZE': {
        'validator': is_positive_int,
        'error_message': 'MAX_PAGE_SIZE must be a positive integer',
    },
    'NEAR_EXPIRY_DEFAULT_DAYS': {
        'validator': lambda v: is_positive_int(v) and v <= MAX_NEAR_EXPIRY_DAYS,
        'error_message': f'NEAR_EXPIRY_DEFAULT_DAYS must be an integer between 1 and {MAX_NEAR_EXPIRY_DAYS}',
    },
    'PERMISSION_CACHE_TTL': {
        'validator': is_positive_int,
        'error_message': 'PERMISSION_CACHE_TTL must be a positive number of seconds',
    },
    'REDIS_URL': {
        'validator': is_valid_redis_url,
        'error_message': 'REDIS_URL must be a redis:// or rediss:// URL when set',
    },
    'ADMIN_ROLE': {
        'validator': lambda v: bool(v),
        'error_message': 'ADMIN_ROLE must be a non-empty string',
    },
    'CORS_ORIGINS': {
        'validator': is_valid_cors_origins,
        'error_message': 'CORS_ORIGINS must be a comma-separated list of valid URLs or *',
    },
}


def validate_config(config, production=False):
    """
    Validates the loaded configuration against the rules
    Raises ConfigurationError listing every invalid key
    """
    errors = []

    for key, rule in VALIDATION_RULES.items():
        value = config.get(key)
        validator = rule['validator']
        if production and 'production_validator' in rule:
            validator = rule['production_validator']

        if not validator(value):
            errors.append(f"{key}: {rule['error_message']}")

    if config.get('DEFAULT_PAGE_SIZE') and config.get('MAX_PAGE_SIZE'):
        if is_positive_int(config['DEFAULT_PAGE_SIZE']) and is_positive_int(config['MAX_PAGE_SIZE']):
            if config['DEFAULT_PAGE_SIZE'] > config['MAX_PAGE_SIZE']:
                errors.append('DEFAULT_PAGE_SIZE: must not exceed MAX_PAGE_SIZE')

    if errors:
        raise ConfigurationError(errors)
