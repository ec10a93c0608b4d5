"""Exception taxonomy for the program import pipeline.

- RecordParseError: the raw record cannot be imported at all (skipped, counted).
- PersistenceError: writing a dependent entity failed; the record is skipped.
- StoreUnavailable: the store cannot be reached; the whole run aborts.
- AttributeCoercionError: one attribute value does not fit its typed slot.
"""
from __future__ import annotations


class ProgramETLError(Exception):
    """Base class for pipeline errors."""


class RecordParseError(ProgramETLError):
    def __init__(self, field: str, issue: str):
        super().__init__(f"{field}: {issue}")
        self.field = field
        self.issue = issue


class PersistenceError(ProgramETLError):
    def __init__(self, entity: str, issue: str):
        super().__init__(f"{entity}: {issue}")
        self.entity = entity
        self.issue = issue


class StoreUnavailable(ProgramETLError):
    """Connection/configuration failure of the target store. Fatal."""


class AttributeCoercionError(ProgramETLError):
    def __init__(self, attribute: str, data_type: str, value):
        super().__init__(f"cannot store {value!r} as {data_type} for {attribute}")
        self.attribute = attribute
        self.data_type = data_type
        self.value = value
