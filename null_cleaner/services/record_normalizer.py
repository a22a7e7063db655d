import copy
import logging
from typing import Any, Dict, List, Optional

from null_cleaner.dto.decision_dto import NormalizationDecision, classify
from null_cleaner.exception.OidShapeError import OidShapeError
from null_cleaner.utils.nullness import is_null_like_field
from null_cleaner.utils.oid_filter import OID_FIELD, filter_oid_entries
from null_cleaner.utils.payload_repair import parse_payload

logger = logging.getLogger(__name__)

HE_FIELD = 'he'
HM_FIELD = 'hm'


def coerce_oid_entries(value: Any, identity: Optional[str] = None) -> List[Any]:
    """Return `oid` as a list of entries, parsing it first when stored as JSON text."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (str, bytes, bytearray)):
        parsed = parse_payload(value, identity)
        if parsed.ok and isinstance(parsed.value, list):
            return parsed.value
        detail = parsed.describe() if not parsed.ok else f'parsed to {type(parsed.value).__name__}'
        raise OidShapeError(f'oid text is not a JSON array ({detail})')
    raise OidShapeError(f'oid is {type(value).__name__}, expected a list')


class RecordNormalizer:
    """Decide what a single record needs. Stateless; never mutates its input.

    - `he` / `hm` are unset only when present and null-like.
    - `oid` entries of type he/hm with a null-like id are dropped; the
      updated payload always carries the canonical list, but `oid` is only
      written back when something was removed.
    - An `oid` that is not a list is left untouched and logged.
    """

    def normalize(self, payload: Dict[str, Any], identity: Optional[str] = None) -> NormalizationDecision:
        if not isinstance(payload, dict):
            raise TypeError(f'payload must be a dict, got {type(payload).__name__}')
        updated = copy.deepcopy(payload)

        he_null = is_null_like_field(payload, HE_FIELD)
        hm_null = is_null_like_field(payload, HM_FIELD)
        classification = classify(he_null, hm_null)

        unset_fields = []
        if he_null:
            unset_fields.append(HE_FIELD)
        if hm_null:
            unset_fields.append(HM_FIELD)
        for field in unset_fields:
            updated.pop(field, None)

        oid_removals = []
        set_fields = {}
        if OID_FIELD in updated:
            try:
                entries = coerce_oid_entries(updated[OID_FIELD], identity)
            except OidShapeError as e:
                logger.warning('Leaving oid untouched for %s: %s', identity or '<unknown>', e)
            else:
                result = filter_oid_entries(entries, identity)
                updated[OID_FIELD] = result.kept
                oid_removals = result.removals
                if result.changed:
                    set_fields[OID_FIELD] = result.kept

        return NormalizationDecision(
            classification=classification,
            oid_removals=oid_removals,
            unset_fields=unset_fields,
            set_fields=set_fields,
            updated_payload=updated,
        )
