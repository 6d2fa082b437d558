"""Conversions between Python records and DynamoDB items.

DynamoDB only accepts ``Decimal`` for numbers and hands them back the same
way, so every record crosses this module on its way in and out of a table.
"""

from decimal import Decimal
from typing import Any


def to_dynamodb_value(value: Any) -> Any:
    """Recursively convert numbers in ``value`` to ``Decimal``.

    Floats go through ``str`` so the shortest round-tripping representation
    is stored and reads back as the same float.
    """
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, dict):
        return {key: to_dynamodb_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamodb_value(item) for item in value]
    return value


def from_dynamodb_value(value: Any) -> Any:
    """Recursively convert ``Decimal`` values back to ``int``/``float``."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: from_dynamodb_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [from_dynamodb_value(item) for item in value]
    if isinstance(value, set):
        return [from_dynamodb_value(item) for item in sorted(value)]
    return value


def prepare_for_dynamodb(record: dict[str, Any]) -> dict[str, Any]:
    """Prepare a record for ``put_item``.

    ``None`` attributes are dropped since DynamoDB cannot index them and an
    absent attribute reads back the same way through the Pydantic models.
    """
    return {
        key: to_dynamodb_value(value)
        for key, value in record.items()
        if value is not None
    }


def parse_from_dynamodb(item: dict[str, Any]) -> dict[str, Any]:
    """Parse a DynamoDB item into plain Python types."""
    return from_dynamodb_value(item)


def build_update_expression(
    changes: dict[str, Any],
) -> tuple[str, dict[str, str], dict[str, Any]]:
    """Build a ``SET`` update expression for ``update_item``.

    Attribute names are always aliased so reserved words such as ``status``
    and ``date`` can be updated.

    Returns:
        Tuple of (UpdateExpression, ExpressionAttributeNames,
        ExpressionAttributeValues)
    """
    if not changes:
        raise ValueError("No changes to apply")

    names = {}
    values = {}
    clauses = []
    for index, (field, value) in enumerate(changes.items()):
        names[f"#f{index}"] = field
        values[f":v{index}"] = to_dynamodb_value(value)
        clauses.append(f"#f{index} = :v{index}")

    return "SET " + ", ".join(clauses), names, values
