"""
Constraint rules for request shapes.

A constraint is plain data: ``(field, rule, params, message)``.  Shapes
declare them once, at class-definition time, as a tuple in
``__constraints__``; the extractor walks that tuple for every payload.

Available rules:

- ``length``   — ``min`` / ``max`` on ``len(value)`` (strings and lists)
- ``range``    — ``min`` / ``max`` on a numeric value
- ``email``    — syntactically valid e-mail address
- ``url``      — absolute URL
- ``pattern``  — ``regex`` must match the whole value
- ``required`` — an optional field must be present and non-null
- ``nested``   — value is itself a shape (or a list of shapes)

Example::

    class ProfileDto(Shape):
        website: Optional[str] = None
        bio: Optional[str] = None

        __constraints__ = (
            constraint("website", "url", "Website must be an absolute URL"),
            constraint("bio", "required", "Bio is required"),
            constraint("bio", "length", "Bio must not exceed 500 characters", max=500),
        )
"""

import re
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, NamedTuple

from email_validator import EmailNotValidError, validate_email
from pydantic import AnyUrl, TypeAdapter, ValidationError

_URL_ADAPTER = TypeAdapter(AnyUrl)


class Constraint(NamedTuple):
    """One declared rule on one field of a shape."""

    field: str
    rule: str
    params: Mapping[str, Any]
    message: str


def _check_length(value: Any, params: Mapping[str, Any]) -> bool:
    size = len(value)
    lower, upper = params.get("min"), params.get("max")
    return (lower is None or size >= lower) and (upper is None or size <= upper)


def _check_range(value: Any, params: Mapping[str, Any]) -> bool:
    lower, upper = params.get("min"), params.get("max")
    return (lower is None or value >= lower) and (upper is None or value <= upper)


def _check_email(value: Any, params: Mapping[str, Any]) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _check_url(value: Any, params: Mapping[str, Any]) -> bool:
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        return False
    return True


def _check_pattern(value: Any, params: Mapping[str, Any]) -> bool:
    return re.fullmatch(params["regex"], value) is not None


# ``required`` and ``nested`` are evaluated by the extractor itself: the
# first is the only rule that looks at a missing value, the second recurses.
RULES: Dict[str, Callable[[Any, Mapping[str, Any]], bool]] = {
    "length": _check_length,
    "range": _check_range,
    "email": _check_email,
    "url": _check_url,
    "pattern": _check_pattern,
}
STRUCTURAL_RULES = frozenset({"required", "nested"})


def constraint(field: str, rule: str, message: str, **params: Any) -> Constraint:
    """
    Declare a constraint.

    Unknown rule names are rejected here, at import time of the shape
    module, rather than on the first request that exercises them.

    Example::

        constraint("username", "length", "Username must be between 3 and 50 characters", min=3, max=50)
    """
    if rule not in RULES and rule not in STRUCTURAL_RULES:
        raise ValueError(f"Unknown constraint rule '{rule}' on field '{field}'")
    if rule == "pattern":
        re.compile(params["regex"])
    return Constraint(field, rule, MappingProxyType(dict(params)), message)
