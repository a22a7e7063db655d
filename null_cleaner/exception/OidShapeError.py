class OidShapeError(Exception):
    """Raised when an `oid` field is present but is not a list of entries."""
    def __init__(self, message):
        super().__init__(message)
