class WriteFailure(Exception):
    """Raised by an adapter when the backend rejects or cannot apply a record write."""
    def __init__(self, identity, message):
        super().__init__(f'write failed for {identity}: {message}')
        self.identity = identity
