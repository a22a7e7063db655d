class BackendConnectivityError(Exception):
    """Raised when the record stream or write channel of a backend cannot be opened or is lost."""
    def __init__(self, backend, message):
        super().__init__(f'{backend}: {message}')
        self.backend = backend
