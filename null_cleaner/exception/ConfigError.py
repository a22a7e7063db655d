class ConfigError(Exception):
    """Raised when a required connection parameter is missing or invalid."""
    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])
