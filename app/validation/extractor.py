"""
Validated-input extractor.

Turns an untyped request payload into a constraint-checked shape in two
stages:

1. **Structural decode** — JSON parsing plus pydantic model construction
   (types, required keys).  Any failure here short-circuits to
   :class:`Malformed`; constraint checks never run on a payload that does
   not decode.
2. **Constraint evaluation** — every constraint of every field is checked,
   with no early exit.  Messages are grouped per field (dotted path for
   nested shapes, e.g. ``metadata.tags[0].name``) in declaration order.

Both :func:`validate` and :func:`validate_query` are pure: the same payload
always produces an equal outcome.
"""

from dataclasses import dataclass
from typing import (
    Annotated,
    Any,
    ClassVar,
    Dict,
    Generic,
    List,
    Mapping,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from pydantic import BaseModel, Field, ValidationError

from app.validation.rules import RULES, Constraint

MALFORMED_BODY = "Request body could not be decoded into the expected structure"
MALFORMED_QUERY = "Query parameters could not be decoded into the expected structure"

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

# Integers the storage layer can hold; anything wider is a decode failure.
Int32 = Annotated[int, Field(ge=INT32_MIN, le=INT32_MAX)]


class Shape(BaseModel):
    """
    Base class for every input DTO.

    Subclasses declare field types as regular pydantic fields (the
    structural part) and their value constraints in ``__constraints__``.
    """

    __constraints__: ClassVar[Tuple[Constraint, ...]] = ()


ShapeT = TypeVar("ShapeT", bound=Shape)


@dataclass(frozen=True)
class Violation:
    """All failed constraint messages for a single field."""

    field: str
    messages: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "messages": list(self.messages)}


@dataclass(frozen=True)
class Valid(Generic[ShapeT]):
    value: ShapeT


@dataclass(frozen=True)
class Invalid:
    violations: Tuple[Violation, ...]


@dataclass(frozen=True)
class Malformed:
    """Structural decode failure (``source`` is ``_json`` or ``_query``)."""

    source: str
    message: str


Outcome = Union[Valid, Invalid, Malformed]


def check(instance: Shape, prefix: str = "") -> Dict[str, List[str]]:
    """
    Evaluate every constraint declared on ``instance`` (and nested shapes).

    Returns a mapping of field path → failed messages; empty when valid.
    Absent or ``None`` values skip every rule except ``required``.
    """
    failures: Dict[str, List[str]] = {}

    for rule in type(instance).__constraints__:
        path = f"{prefix}{rule.field}"
        value = getattr(instance, rule.field, None)

        if rule.rule == "required":
            if value is None:
                failures.setdefault(path, []).append(rule.message)
            continue
        if value is None:
            continue

        if rule.rule == "nested":
            if isinstance(value, (list, tuple)):
                children = [(f"{path}[{index}].", item) for index, item in enumerate(value)]
            else:
                children = [(f"{path}.", value)]
            for child_prefix, child in children:
                for child_path, messages in check(child, child_prefix).items():
                    failures.setdefault(child_path, []).extend(messages)
            continue

        if not RULES[rule.rule](value, rule.params):
            failures.setdefault(path, []).append(rule.message)

    return failures


def _outcome(instance: Shape) -> Outcome:
    failures = check(instance)
    if not failures:
        return Valid(instance)
    return Invalid(
        tuple(Violation(field, tuple(messages)) for field, messages in failures.items())
    )


def validate(payload: Union[bytes, str, Mapping[str, Any]], shape: Type[ShapeT]) -> Outcome:
    """
    Decode and validate a request body against ``shape``.

    ``payload`` is the raw JSON body (``bytes`` / ``str``) or an already
    decoded mapping.
    """
    try:
        if isinstance(payload, (bytes, bytearray, str)):
            instance = shape.model_validate_json(payload)
        else:
            instance = shape.model_validate(payload)
    except ValidationError:
        return Malformed("_json", MALFORMED_BODY)
    return _outcome(instance)


def validate_query(params: Mapping[str, str], shape: Type[ShapeT]) -> Outcome:
    """Decode and validate key/value query parameters against ``shape``."""
    try:
        instance = shape.model_validate(dict(params))
    except ValidationError:
        return Malformed("_query", MALFORMED_QUERY)
    return _outcome(instance)
