"""Stats document and patch shapes.

A stored document is ``category -> date -> attribute -> scalar``. An incoming
patch carries one date per category:

    {"health": {"date": "2024-01-01", "weight": 152, "steps": 8000}}

The explicit form ``{"date": ..., "attributes": {...}}`` is accepted too.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date as Date
from typing import Any, Dict, Hashable, Mapping, Union

from src.exceptions import MalformedDocumentError, MalformedPatchError

Scalar = Union[str, int, float, bool]
AttributeMap = Dict[str, Scalar]
StatsDocument = Dict[str, Dict[str, AttributeMap]]

DATE_KEY = "date"
ATTRIBUTES_KEY = "attributes"
INITIAL_VERSION = 0

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class PatchEntry:
    date: str
    attributes: AttributeMap


Patch = Dict[str, PatchEntry]


@dataclass(frozen=True)
class VersionedDocument:
    """A stats document together with the version token it was read at."""

    stats: StatsDocument = field(default_factory=dict)
    version: Hashable = INITIAL_VERSION


def is_scalar(value: Any) -> bool:
    """Strings, booleans, integers and finite floats; NaN and infinities are not JSON."""
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, (str, int, bool))


def is_valid_date(value: str) -> bool:
    """Return True for a real calendar date written as YYYY-MM-DD."""
    if not _DATE_PATTERN.match(value):
        return False
    try:
        Date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _parse_attributes(category: str, attributes: Mapping) -> AttributeMap:
    if not attributes:
        raise MalformedPatchError(f"Category '{category}' has no attributes")
    parsed: AttributeMap = {}
    for name, value in attributes.items():
        if not isinstance(name, str) or not name:
            raise MalformedPatchError(
                f"Category '{category}' has an invalid attribute name: {name!r}"
            )
        if not is_scalar(value):
            raise MalformedPatchError(
                f"Attribute '{category}.{name}' must be a string, finite number or boolean, "
                f"got {type(value).__name__}"
            )
        parsed[name] = value
    return parsed


def _parse_entry(category: str, entry: Any) -> PatchEntry:
    if not isinstance(entry, Mapping):
        raise MalformedPatchError(f"Category '{category}' must map to an object")
    if DATE_KEY not in entry:
        raise MalformedPatchError(f"Category '{category}' is missing '{DATE_KEY}'")
    date = entry[DATE_KEY]
    if not isinstance(date, str):
        raise MalformedPatchError(f"'{category}.{DATE_KEY}' must be a string")
    if not is_valid_date(date):
        raise MalformedPatchError(
            f"'{category}.{DATE_KEY}' must be a YYYY-MM-DD date, got {date!r}"
        )

    nested = entry.get(ATTRIBUTES_KEY)
    if isinstance(nested, Mapping):
        extra = set(entry) - {DATE_KEY, ATTRIBUTES_KEY}
        if extra:
            raise MalformedPatchError(
                f"Category '{category}' mixes '{ATTRIBUTES_KEY}' with sibling keys: "
                f"{sorted(extra)}"
            )
        attributes = nested
    else:
        attributes = {key: value for key, value in entry.items() if key != DATE_KEY}

    return PatchEntry(date=date, attributes=_parse_attributes(category, attributes))


def parse_patch(raw: Any) -> Patch:
    """Validate a raw patch and convert it to a ``Patch``.

    Args:
        raw (Any): Decoded JSON body of a stats update

    Raises:
        MalformedPatchError: The body does not have the patch shape

    Returns:
        Patch: One entry per category
    """
    if not isinstance(raw, Mapping):
        raise MalformedPatchError("Stats patch must be a JSON object")
    patch: Patch = {}
    for category, entry in raw.items():
        if not isinstance(category, str) or not category:
            raise MalformedPatchError(f"Invalid category name: {category!r}")
        patch[category] = _parse_entry(category, entry)
    return patch


def clone_document(doc: StatsDocument) -> StatsDocument:
    """Return a deep copy of ``doc`` sharing no mutable state with it."""
    return {
        category: {date: dict(attributes) for date, attributes in dates.items()}
        for category, dates in doc.items()
    }


def validate_document(doc: Any) -> StatsDocument:
    """Check that ``doc`` is a three-level mapping with scalar leaves.

    Raises:
        MalformedDocumentError: ``doc`` is not a valid stats document
    """
    if not isinstance(doc, Mapping):
        raise MalformedDocumentError("Stats document must be an object")
    for category, dates in doc.items():
        if not isinstance(category, str) or not isinstance(dates, Mapping):
            raise MalformedDocumentError(f"Invalid category entry: {category!r}")
        for date, attributes in dates.items():
            if not isinstance(date, str) or not isinstance(attributes, Mapping):
                raise MalformedDocumentError(f"Invalid date entry: {category}.{date!r}")
            for name, value in attributes.items():
                if not isinstance(name, str) or not is_scalar(value):
                    raise MalformedDocumentError(
                        f"Invalid attribute: {category}.{date}.{name!r}"
                    )
    return doc
