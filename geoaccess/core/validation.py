"""
Input validation shared by the services.

Every check runs before any state change and raises ValidationError.
"""

from typing import Iterable, List, Optional

from geoaccess.core.exceptions import ValidationError


def require_text(value: Optional[str], field: str) -> str:
    """Non-empty, stripped string."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} must not be empty", field=field)
    return str(value).strip()


def validate_region(region: Optional[str], universe: Iterable[str], field: str = "region") -> str:
    """A single known region name."""
    name = require_text(region, field)
    if name not in set(universe):
        raise ValidationError(f"Unknown region: {name}", field=field)
    return name


def validate_regions(
    regions: Optional[Iterable[str]],
    universe: Iterable[str],
    field: str = "regions",
    allow_empty: bool = False,
) -> List[str]:
    """Known region names, de-duplicated with order preserved."""
    if isinstance(regions, str):
        raise ValidationError(f"{field} must be a list of region names", field=field)

    known = set(universe)
    result: List[str] = []
    for region in regions or []:
        name = require_text(region, field)
        if name not in known:
            raise ValidationError(f"Unknown region: {name}", field=field)
        if name not in result:
            result.append(name)

    if not result and not allow_empty:
        raise ValidationError(f"{field} must contain at least one region", field=field)
    return result
