"""Cleaner configuration settings.

This module centralizes all configuration values loaded from:
1. config.base.yaml (shared defaults)
2. config.{env}.yaml (environment-specific: dev, staging, prod)
3. config.local.yaml (local overrides, git-ignored)
4. Environment variables (highest priority)

Default environment is 'development' (DEV). The YAML directory defaults to
this package and can be moved with CLEANER_CONFIG_DIR.

Usage:
    from config.settings import config

    config.validate_required()       # raises ConfigError
    uri = config.MONGO_URI
    chunk = config.CHUNK_SIZE
"""
import os
from pathlib import Path
from typing import Optional, Any, Dict, Iterable
import yaml

from null_cleaner.exception.ConfigError import ConfigError


# Environment name mappings
ENV_ALIASES = {
    'dev': 'development',
    'development': 'development',
    'staging': 'staging',
    'stage': 'staging',
    'prod': 'production',
    'production': 'production',
}

# Default environment
DEFAULT_ENV = 'development'

BACKENDS = ('mongo', 'aerospike')

TRUE_VALUES = ('1', 'true', 'yes')


def _env_flag(name: str) -> Optional[bool]:
    env_val = os.getenv(name, '').lower()
    if env_val:
        return env_val in TRUE_VALUES
    return None


class Config:
    """Centralized cleaner configuration.

    Priority (highest to lowest):
    1. Environment variables
    2. config.local.yaml (for local development overrides)
    3. config.{env}.yaml (environment-specific: dev, staging, prod)
    4. config.base.yaml (shared defaults)

    Environment is determined by APP_ENV (default: 'development').
    """

    _config_data: Dict[str, Any] = {}
    _loaded: bool = False
    _current_env: str = DEFAULT_ENV

    def __init__(self):
        if not Config._loaded:
            self._load_config()

    @classmethod
    def _get_environment(cls) -> str:
        """Determine current environment from env vars or default to dev."""
        env = os.getenv('APP_ENV') or DEFAULT_ENV
        env = env.lower().strip()
        return ENV_ALIASES.get(env, DEFAULT_ENV)

    @staticmethod
    def _config_dir() -> Path:
        override = os.getenv('CLEANER_CONFIG_DIR')
        return Path(override) if override else Path(__file__).parent

    def _load_config(self):
        """Load configuration from YAML files based on environment."""
        config_dir = self._config_dir()
        Config._current_env = self._get_environment()

        # Start with empty config
        Config._config_data = {}

        env_config_map = {
            'development': 'config.dev.yaml',
            'staging': 'config.staging.yaml',
            'production': 'config.prod.yaml',
        }
        files = [
            'config.base.yaml',
            env_config_map.get(Config._current_env, 'config.dev.yaml'),
            'config.local.yaml',
        ]
        for name in files:
            path = config_dir / name
            if not path.exists():
                continue
            try:
                with open(path, 'r') as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f'Malformed configuration file {path}: {e}') from e
            if not isinstance(data, dict):
                raise ConfigError(f'Configuration file {path} must contain a mapping')
            Config._config_data = self._deep_merge(Config._config_data, data)

        Config._loaded = True

    def _deep_merge(self, base: dict, override: dict) -> dict:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _get_yaml_value(self, *keys, default=None) -> Any:
        """Get a nested value from YAML config."""
        value = Config._config_data
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
            if value is None:
                return default
        return value

    @classmethod
    def reload(cls):
        """Reload configuration (useful for testing)."""
        cls._loaded = False
        cls._config_data = {}
        instance = cls()
        return instance

    # ==========================================================================
    # Environment Info
    # ==========================================================================

    @property
    def CURRENT_ENV(self) -> str:
        """Current environment name."""
        return Config._current_env

    @property
    def IS_DEV(self) -> bool:
        return Config._current_env == 'development'

    @property
    def IS_STAGING(self) -> bool:
        return Config._current_env == 'staging'

    @property
    def IS_PROD(self) -> bool:
        return Config._current_env == 'production'

    @property
    def APP_NAME(self) -> str:
        return os.getenv('APP_NAME') or self._get_yaml_value('app', 'name', default='Null Field Cleaner')

    # ==========================================================================
    # Run Settings
    # ==========================================================================

    @property
    def CHUNK_SIZE(self) -> int:
        """Records pulled and processed per round of store interaction."""
        env_val = os.getenv('CHUNK_SIZE')
        if env_val:
            return int(env_val)
        return int(self._get_yaml_value('run', 'chunk_size', default=500))

    @property
    def RUN_DEADLINE_SECONDS(self) -> Optional[float]:
        """Overall deadline for the parallel backend runs (None = wait forever)."""
        env_val = os.getenv('RUN_DEADLINE_SECONDS')
        if env_val:
            return float(env_val)
        value = self._get_yaml_value('run', 'deadline_seconds')
        return float(value) if value is not None else None

    @property
    def DRY_RUN(self) -> bool:
        flag = _env_flag('DRY_RUN')
        if flag is not None:
            return flag
        return bool(self._get_yaml_value('run', 'dry_run', default=False))

    # ==========================================================================
    # MongoDB Settings
    # ==========================================================================

    @property
    def MONGO_ENABLED(self) -> bool:
        flag = _env_flag('MONGO_ENABLED')
        if flag is not None:
            return flag
        return bool(self._get_yaml_value('mongodb', 'enabled', default=True))

    @property
    def MONGO_URI(self) -> Optional[str]:
        """MongoDB connection URI."""
        return os.getenv('MONGO_URI') or self._get_yaml_value('mongodb', 'uri', default='mongodb://localhost:27017')

    @property
    def MONGO_DB(self) -> Optional[str]:
        return os.getenv('MONGO_DB') or self._get_yaml_value('mongodb', 'database')

    @property
    def MONGO_COLLECTION(self) -> Optional[str]:
        return os.getenv('MONGO_COLLECTION') or self._get_yaml_value('mongodb', 'collection')

    @property
    def MONGO_TIMEOUT_MS(self) -> int:
        env_val = os.getenv('MONGO_TIMEOUT_MS')
        if env_val:
            return int(env_val)
        return int(self._get_yaml_value('mongodb', 'timeout_ms', default=5000))

    @property
    def MONGO_PREFILTER(self) -> bool:
        """Only scan documents whose he/hm could be null-like."""
        flag = _env_flag('MONGO_PREFILTER')
        if flag is not None:
            return flag
        return bool(self._get_yaml_value('mongodb', 'prefilter', default=True))

    # ==========================================================================
    # Aerospike Settings
    # ==========================================================================

    @property
    def AEROSPIKE_ENABLED(self) -> bool:
        flag = _env_flag('AEROSPIKE_ENABLED')
        if flag is not None:
            return flag
        return bool(self._get_yaml_value('aerospike', 'enabled', default=True))

    @property
    def AEROSPIKE_HOST(self) -> Optional[str]:
        return os.getenv('AEROSPIKE_HOST') or self._get_yaml_value('aerospike', 'host', default='localhost')

    @property
    def AEROSPIKE_PORT(self) -> int:
        env_val = os.getenv('AEROSPIKE_PORT')
        if env_val:
            return int(env_val)
        return int(self._get_yaml_value('aerospike', 'port', default=3000))

    @property
    def AEROSPIKE_NAMESPACE(self) -> Optional[str]:
        return os.getenv('AEROSPIKE_NAMESPACE') or self._get_yaml_value('aerospike', 'namespace')

    @property
    def AEROSPIKE_SET(self) -> Optional[str]:
        return os.getenv('AEROSPIKE_SET') or self._get_yaml_value('aerospike', 'set')

    @property
    def AEROSPIKE_PAYLOAD_BIN(self) -> str:
        """Bin holding the JSON-encoded payload."""
        return os.getenv('AEROSPIKE_PAYLOAD_BIN') or self._get_yaml_value('aerospike', 'payload_bin', default='pf')

    @property
    def AEROSPIKE_TIMEOUT_MS(self) -> int:
        env_val = os.getenv('AEROSPIKE_TIMEOUT_MS')
        if env_val:
            return int(env_val)
        return int(self._get_yaml_value('aerospike', 'timeout_ms', default=5000))

    # ==========================================================================
    # Logging Settings
    # ==========================================================================

    @property
    def LOG_LEVEL(self) -> str:
        """Logging level."""
        env_val = os.getenv('LOG_LEVEL')
        if env_val:
            return env_val.upper()
        # If debug mode, use DEBUG level
        if self.LOG_DEBUG:
            return 'DEBUG'
        return str(self._get_yaml_value('logging', 'level', default='INFO')).upper()

    @property
    def LOG_DEBUG(self) -> bool:
        """Enable debug logging (verbose)."""
        flag = _env_flag('LOG_DEBUG')
        if flag is not None:
            return flag
        return self._get_yaml_value('logging', 'debug', default=False)

    @property
    def LOG_PATTERN(self) -> str:
        """Log format pattern."""
        env_val = os.getenv('LOG_PATTERN')
        if env_val:
            return env_val
        return self._get_yaml_value('logging', 'pattern', default='%(message)s')

    @property
    def LOG_INCLUDE_DATETIME(self) -> bool:
        flag = _env_flag('LOG_INCLUDE_DATETIME')
        if flag is not None:
            return flag
        return self._get_yaml_value('logging', 'include_datetime', default=True)

    @property
    def LOG_INCLUDE_NAME(self) -> bool:
        flag = _env_flag('LOG_INCLUDE_NAME')
        if flag is not None:
            return flag
        return self._get_yaml_value('logging', 'include_name', default=False)

    @property
    def LOG_INCLUDE_LEVEL(self) -> bool:
        flag = _env_flag('LOG_INCLUDE_LEVEL')
        if flag is not None:
            return flag
        return self._get_yaml_value('logging', 'include_level', default=True)

    @property
    def LOG_DATE_FORMAT(self) -> str:
        """Date format for logs."""
        return self._get_yaml_value('logging', 'date_format', default='%H:%M:%S')

    @property
    def LOG_FORMAT(self) -> str:
        """Build log format string based on config options."""
        # If custom pattern is set, use it
        pattern = self.LOG_PATTERN
        if pattern and pattern != '%(message)s':
            return pattern

        parts = []
        if self.LOG_INCLUDE_DATETIME:
            parts.append('%(asctime)s')
        if self.LOG_INCLUDE_NAME:
            parts.append('%(name)s')
        if self.LOG_INCLUDE_LEVEL:
            parts.append('%(levelname)s')
        parts.append('%(message)s')

        return ' - '.join(parts) if len(parts) > 1 else parts[0]

    @property
    def INVALID_RECORD_LOG_FILE(self) -> Optional[str]:
        """Per-record findings (invalid profiles, skipped payloads, failed writes)."""
        return os.getenv('INVALID_RECORD_LOG_FILE') or self._get_yaml_value('logging', 'invalid_record_file')

    @property
    def STATISTICS_LOG_FILE(self) -> Optional[str]:
        """Running statistics after every chunk."""
        return os.getenv('STATISTICS_LOG_FILE') or self._get_yaml_value('logging', 'statistics_file')

    # ==========================================================================
    # Validation Methods
    # ==========================================================================

    def enabled_backends(self) -> list:
        return [b for b, on in (('mongo', self.MONGO_ENABLED), ('aerospike', self.AEROSPIKE_ENABLED)) if on]

    def validate_required(self, backends: Optional[Iterable[str]] = None) -> None:
        """Validate connection parameters for the backends that will run.

        Raises ConfigError listing every problem found.
        """
        errors = []
        selected = list(backends) if backends is not None else self.enabled_backends()
        unknown = [b for b in selected if b not in BACKENDS]
        if unknown:
            errors.append(f'Unknown backend(s): {", ".join(unknown)}')
        if not selected:
            errors.append('No backend enabled (set mongodb.enabled or aerospike.enabled)')

        try:
            if self.CHUNK_SIZE <= 0:
                errors.append('run.chunk_size / CHUNK_SIZE must be a positive integer')
        except (TypeError, ValueError):
            errors.append('run.chunk_size / CHUNK_SIZE must be an integer')

        try:
            deadline = self.RUN_DEADLINE_SECONDS
            if deadline is not None and deadline <= 0:
                errors.append('run.deadline_seconds / RUN_DEADLINE_SECONDS must be positive')
        except (TypeError, ValueError):
            errors.append('run.deadline_seconds / RUN_DEADLINE_SECONDS must be a number')

        if 'mongo' in selected:
            if not self.MONGO_URI:
                errors.append('mongodb.uri / MONGO_URI is required')
            if not self.MONGO_DB:
                errors.append('mongodb.database / MONGO_DB is required')
            if not self.MONGO_COLLECTION:
                errors.append('mongodb.collection / MONGO_COLLECTION is required')
            try:
                self.MONGO_TIMEOUT_MS
            except (TypeError, ValueError):
                errors.append('mongodb.timeout_ms / MONGO_TIMEOUT_MS must be an integer')

        if 'aerospike' in selected:
            if not self.AEROSPIKE_HOST:
                errors.append('aerospike.host / AEROSPIKE_HOST is required')
            try:
                port = self.AEROSPIKE_PORT
                if not 0 < port < 65536:
                    errors.append(f'aerospike.port / AEROSPIKE_PORT out of range: {port}')
            except (TypeError, ValueError):
                errors.append('aerospike.port / AEROSPIKE_PORT must be an integer')
            if not self.AEROSPIKE_NAMESPACE:
                errors.append('aerospike.namespace / AEROSPIKE_NAMESPACE is required')
            if not self.AEROSPIKE_SET:
                errors.append('aerospike.set / AEROSPIKE_SET is required')
            try:
                self.AEROSPIKE_TIMEOUT_MS
            except (TypeError, ValueError):
                errors.append('aerospike.timeout_ms / AEROSPIKE_TIMEOUT_MS must be an integer')

        if errors:
            raise ConfigError('Configuration errors:\n' + '\n'.join(f'  - {e}' for e in errors), errors)

    def to_dict(self) -> Dict[str, Any]:
        """Export non-sensitive config as dictionary (for startup logging)."""
        return {
            'environment': {
                'current': self.CURRENT_ENV,
                'is_dev': self.IS_DEV,
                'is_staging': self.IS_STAGING,
                'is_prod': self.IS_PROD,
            },
            'run': {
                'chunk_size': self.CHUNK_SIZE,
                'deadline_seconds': self.RUN_DEADLINE_SECONDS,
                'dry_run': self.DRY_RUN,
            },
            'mongodb': {
                'enabled': self.MONGO_ENABLED,
                'uri': '***' if self.MONGO_URI else None,
                'database': self.MONGO_DB,
                'collection': self.MONGO_COLLECTION,
                'prefilter': self.MONGO_PREFILTER,
            },
            'aerospike': {
                'enabled': self.AEROSPIKE_ENABLED,
                'host': self.AEROSPIKE_HOST,
                'port': self.AEROSPIKE_PORT,
                'namespace': self.AEROSPIKE_NAMESPACE,
                'set': self.AEROSPIKE_SET,
                'payload_bin': self.AEROSPIKE_PAYLOAD_BIN,
            },
            'logging': {
                'level': self.LOG_LEVEL,
                'invalid_record_file': self.INVALID_RECORD_LOG_FILE,
                'statistics_file': self.STATISTICS_LOG_FILE,
            },
        }


# Singleton config instance
config = Config()


# =============================================================================
# Convenience exports
# =============================================================================

def get_env() -> str:
    return config.CURRENT_ENV

def is_dev() -> bool:
    return config.IS_DEV

def is_prod() -> bool:
    return config.IS_PROD
