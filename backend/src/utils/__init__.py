"""Utility functions for the GreenGrid backend."""

from .dynamodb_utils import (
    build_update_expression,
    from_dynamodb_value,
    parse_from_dynamodb,
    prepare_for_dynamodb,
    to_dynamodb_value,
)
from .id_utils import new_id, utc_now_iso

__all__ = [
    "build_update_expression",
    "from_dynamodb_value",
    "parse_from_dynamodb",
    "prepare_for_dynamodb",
    "to_dynamodb_value",
    "new_id",
    "utc_now_iso",
]
