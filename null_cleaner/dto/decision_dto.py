from enum import Enum
from typing import Any, Dict, List, Optional

from null_cleaner.utils.oid_filter import OidRemoval


class NullClassification(str, Enum):
    NONE = "none"
    HE_ONLY = "he_only"
    HM_ONLY = "hm_only"
    BOTH = "both"


def classify(he_null: bool, hm_null: bool) -> NullClassification:
    if he_null and hm_null:
        return NullClassification.BOTH
    if he_null:
        return NullClassification.HE_ONLY
    if hm_null:
        return NullClassification.HM_ONLY
    return NullClassification.NONE


class NormalizationDecision:
    """What one record needs: fields to unset, fields to set and the rewritten payload."""

    def __init__(self, classification: NullClassification, oid_removals: Optional[List[OidRemoval]] = None,
                 unset_fields: Optional[List[str]] = None, set_fields: Optional[Dict[str, Any]] = None,
                 updated_payload: Optional[Dict[str, Any]] = None):
        self.classification = classification
        self.oid_removals = list(oid_removals or [])
        self.unset_fields = list(unset_fields or [])
        self.set_fields = dict(set_fields or {})
        self.updated_payload = updated_payload if updated_payload is not None else {}

    @property
    def changed(self) -> bool:
        return self.classification is not NullClassification.NONE or bool(self.oid_removals)

    @property
    def he_oid_removed(self) -> int:
        return sum(1 for r in self.oid_removals if r is OidRemoval.REMOVED_HE)

    @property
    def hm_oid_removed(self) -> int:
        return sum(1 for r in self.oid_removals if r is OidRemoval.REMOVED_HM)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'changed': self.changed,
            'classification': self.classification.value,
            'oid_removals': [r.value for r in self.oid_removals],
            'unset_fields': list(self.unset_fields),
            'set_fields': dict(self.set_fields),
        }

    def __repr__(self):
        return (f'NormalizationDecision(changed={self.changed}, classification={self.classification.value}, '
                f'unset={self.unset_fields}, set={list(self.set_fields)})')
