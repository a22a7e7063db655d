from .decision_dto import NullClassification, NormalizationDecision, classify
from .run_report_dto import BackendKind, RunCounters, RunReport

__all__ = [
    'NullClassification', 'NormalizationDecision', 'classify',
    'BackendKind', 'RunCounters', 'RunReport',
]
