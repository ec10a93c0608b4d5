"""
Attribute Store Writer.

Program facts that are sparse or still evolving (cost category, deadlines,
grade bounds...) are stored entity-attribute-value style: one ProgramAttribute
row per (program, AttributeDefinition), with the value in the single typed
column that matches the definition's data_type. Definitions are never created
here; names missing from the registry are dropped.
"""
from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import AttributeCoercionError, PersistenceError
from .store import savepoint

logger = logging.getLogger("program_etl")

TRUE_VALUES = frozenset({"true", "yes", "y", "1"})
FALSE_VALUES = frozenset({"false", "no", "n", "0"})

_INT_RE = re.compile(r"^[+-]?\d+$")
_ARRAY_SPLIT_RE = re.compile(r"\s*[,;|]\s*")


def _to_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        number = Decimal(str(value))
    else:
        s = str(value).strip()
        if _INT_RE.match(s):
            return int(s)
        number = Decimal(s)
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError("not a whole number")
    return int(number)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    if not number.is_finite():
        raise ValueError("not a finite number")
    return number


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    s = str(value).strip().lower()
    if s in TRUE_VALUES:
        return True
    if s in FALSE_VALUES:
        return False
    raise ValueError("not a boolean")


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def _to_json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    json.dumps(value)
    return value


def _to_array(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        return [part for part in _ARRAY_SPLIT_RE.split(value.strip()) if part]
    raise ValueError("not a list")


COERCERS = {
    "string": lambda v: str(v).strip(),
    "integer": _to_integer,
    "decimal": _to_decimal,
    "boolean": _to_boolean,
    "date": _to_date,
    "json": _to_json,
    "array": _to_array,
}


def coerce_value(data_type: str, value: Any, attribute: str = "") -> Tuple[str, Any]:
    """Return (column_name, coerced_value) for a definition's data_type."""
    from catalog.models import VALUE_COLUMNS

    coercer = COERCERS.get(data_type)
    column = VALUE_COLUMNS.get(data_type)
    if coercer is None or column is None:
        raise AttributeCoercionError(attribute, data_type, value)
    try:
        return column, coercer(value)
    except (ValueError, TypeError, InvalidOperation) as e:
        raise AttributeCoercionError(attribute, data_type, value) from e


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


class AttributeWriter:
    def __init__(self, report):
        self.report = report
        self._definitions: Optional[Dict[str, Any]] = None

    @property
    def definitions(self) -> Dict[str, Any]:
        """Active program attribute definitions by name, loaded once per writer."""
        if self._definitions is None:
            from catalog.models import AttributeDefinition

            qs = AttributeDefinition.objects.filter(applies_to="programs", is_active=True)
            self._definitions = {d.name: d for d in qs}
        return self._definitions

    def write(self, program, values: Mapping[str, Any], record_id: str) -> int:
        from catalog.models import VALUE_COLUMNS, ProgramAttribute

        written = 0
        for name, value in values.items():
            if is_empty(value):
                continue
            definition = self.definitions.get(name)
            if definition is None:
                continue
            try:
                column, coerced = coerce_value(definition.data_type, value, name)
            except AttributeCoercionError as e:
                self.report.warning(record_id, name, str(e))
                continue
            payload = {col: None for col in VALUE_COLUMNS.values()}
            payload[column] = coerced
            try:
                with savepoint(f"attribute {name}"):
                    ProgramAttribute.objects.update_or_create(
                        program=program, attribute_definition=definition, defaults=payload
                    )
            except PersistenceError as e:
                logger.warning("attribute %s not stored for %s: %s", name, record_id, e.issue)
                self.report.warning(record_id, name, f"Attribute not stored: {e.issue}")
                continue
            written += 1
        return written
