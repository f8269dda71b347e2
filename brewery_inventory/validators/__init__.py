from .config_validator import ConfigurationError, validate_config

__all__ = ['ConfigurationError', 'validate_config']
