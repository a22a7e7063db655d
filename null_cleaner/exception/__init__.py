from .ConfigError import ConfigError
from .BackendConnectivityError import BackendConnectivityError
from .WriteFailure import WriteFailure
from .OidShapeError import OidShapeError

__all__ = ['ConfigError', 'BackendConnectivityError', 'WriteFailure', 'OidShapeError']
