"""Row validation against table JSON schemas.

``build_row_validator()`` returns the ``(data) -> bool`` hook the row loader
accepts.  No validator means every row is accepted.

Shared ``$ref`` schemas (files, system fields) live on the backend and are
not resolvable locally, so referenced subtrees accept any value.  The
``foreignKey`` keyword is not a JSON Schema keyword and is ignored.
"""

import logging
from collections.abc import Callable
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

logger = logging.getLogger(__name__)

RowValidator = Callable[[dict[str, Any]], bool]


def _strip_refs(tree: Any) -> Any:
    if isinstance(tree, dict):
        if "$ref" in tree:
            return {}
        return {key: _strip_refs(value) for key, value in tree.items()}
    if isinstance(tree, list):
        return [_strip_refs(item) for item in tree]
    return tree


def build_row_validator(schema: dict[str, Any] | None) -> RowValidator | None:
    """Build a validator for rows of a table.

    Args:
        schema: The table's JSON schema, or ``None`` if unknown.

    Returns:
        Callable returning True for valid row data, or ``None`` when there
        is no usable schema.

    Example:
        >>> validate = build_row_validator({"type": "object", "required": ["name"]})
        >>> validate({"name": "a"}), validate({})
        (True, False)
    """
    if not schema:
        return None

    tree = _strip_refs(schema)
    try:
        Draft7Validator.check_schema(tree)
    except SchemaError as e:
        logger.warning("Ignoring unusable table schema: %s", e.message)
        return None

    validator = Draft7Validator(tree)

    def validate(data: dict[str, Any]) -> bool:
        errors = list(validator.iter_errors(data))
        for error in errors[:3]:
            logger.debug("Row failed validation at %s: %s", list(error.path), error.message)
        return not errors

    return validate
