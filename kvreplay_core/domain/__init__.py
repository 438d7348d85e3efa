"""Pure replay semantics: key ranges, the reference model and diagnostics."""

from kvreplay_core.domain.diagnostics import CollisionReport, PrefixHit, detect_collision
from kvreplay_core.domain.prefix_range import (
    FULL_RANGE,
    KeyRange,
    get_upper_bound,
    has_prefix,
    prefix_range,
)
from kvreplay_core.domain.reference_model import ReferenceModel

__all__ = [
    "FULL_RANGE",
    "CollisionReport",
    "KeyRange",
    "PrefixHit",
    "ReferenceModel",
    "detect_collision",
    "get_upper_bound",
    "has_prefix",
    "prefix_range",
]
