"""Configuration module for the cleaner.

Supports multiple environments:
- development (default)
- staging
- production

Usage:
    from config import config

    config.validate_required()
    mongo_uri = config.MONGO_URI

Set environment via APP_ENV=production.
"""
from .settings import config, Config, is_dev, is_prod, get_env

__all__ = ['config', 'Config', 'is_dev', 'is_prod', 'get_env']
