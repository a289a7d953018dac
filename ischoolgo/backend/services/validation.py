from typing import Any, Dict, Iterable, Optional, Tuple, Type
import pydantic

from ..errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def validate_fields(
    model: Type[pydantic.BaseModel],
    fields: Optional[Dict[str, Any]],
    required: Iterable[str] = (),
    not_null: Iterable[str] = (),
) -> Dict[str, Any]:
    """
    Checks a write payload against a field model and returns only the fields
    that were supplied, converted to their Python types.

    `required` names must be present with a value; `not_null` names may be
    omitted but never set to None.
    """
    if not fields:
        raise ValidationError("At least one field must be supplied.")
    try:
        parsed = model.model_validate(fields)
    except pydantic.ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise ValidationError(problems) from e

    values = parsed.model_dump(exclude_unset=True)
    missing = [name for name in required if values.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}.")
    nulled = [name for name in not_null if name in values and values[name] is None]
    if nulled:
        raise ValidationError(f"Field(s) cannot be null: {', '.join(nulled)}.")
    return values


def validate_page(page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> Tuple[int, int]:
    """1-based page and a positive limit, capped at MAX_LIMIT."""
    if page < 1:
        raise ValidationError("page must be 1 or greater.")
    if limit < 1:
        raise ValidationError("limit must be 1 or greater.")
    return page, min(limit, MAX_LIMIT)
