"""
Map IBM journal entry type codes (A_ENTTYP) to CDC operations.

- INSERT: PT, RR, PX
- UPDATE: UP, FI, FP
- UPSERT: UR (listed under both insert and update by the journal)
- DELETE: DL, DR
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional
from models.base import CdcOperation

ENTRY_TYPES: Mapping[str, CdcOperation] = MappingProxyType({
    "PT": CdcOperation.INSERT,
    "RR": CdcOperation.INSERT,
    "PX": CdcOperation.INSERT,
    "UP": CdcOperation.UPDATE,
    "FI": CdcOperation.UPDATE,
    "FP": CdcOperation.UPDATE,
    "UR": CdcOperation.UPSERT,
    "DL": CdcOperation.DELETE,
    "DR": CdcOperation.DELETE,
})


def map_entry_type(entry_type: Optional[str]) -> Optional[CdcOperation]:
    """Operation for an entry type code, or None if blank or unrecognized"""
    if entry_type is None or not entry_type.strip():
        return None
    return ENTRY_TYPES.get(entry_type.strip().upper())


def is_valid_entry_type(entry_type: Optional[str]) -> bool:
    return map_entry_type(entry_type) is not None


def valid_entry_types() -> FrozenSet[str]:
    return frozenset(ENTRY_TYPES)
