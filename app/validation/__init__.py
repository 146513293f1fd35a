"""Request validation: constraint rules and the validated-input extractor."""

from app.validation.extractor import (  # noqa: F401
    INT32_MAX,
    INT32_MIN,
    Int32,
    Invalid,
    Malformed,
    Outcome,
    Shape,
    Valid,
    Violation,
    check,
    validate,
    validate_query,
)
from app.validation.rules import Constraint, constraint  # noqa: F401
