"""
Name normalization shared by stations, branches and recipe ids.

Station and branch names arrive from several sources (kitchen tablets, the ERP
sync, spreadsheets) with inconsistent casing and separators, so comparisons go
through these helpers rather than raw string equality.
"""
import re

_SEPARATORS = re.compile(r"[_\-\s]+")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def normalize_name(value: str | None) -> str:
    """
    Normalize a station or branch name for comparison.

    Trims, lowercases, and collapses runs of whitespace, hyphens and
    underscores into a single space.

    Examples:
        >>> normalize_name("  Hot_Line ")
        'hot line'
        >>> normalize_name("Cold-Prep  Station")
        'cold prep station'
    """
    if not value:
        return ""
    return _SEPARATORS.sub(" ", value.strip().lower()).strip()


def same_name(a: str | None, b: str | None) -> bool:
    """True when two names normalize to the same non-empty value."""
    left = normalize_name(a)
    return bool(left) and left == normalize_name(b)


def slugify(name: str) -> str:
    """
    Build a recipe id from a recipe name.

    Examples:
        >>> slugify("Chicken Biryani (Large)")
        'chicken-biryani-large'
        >>> slugify("  --Dal Makhani-- ")
        'dal-makhani'
    """
    return _NON_SLUG.sub("-", (name or "").lower()).strip("-")


def is_central_kitchen(branch: str | None) -> bool:
    """
    Whether a branch name refers to the Central Kitchen.

    The ERP spells it several ways ("Central Kitchen", "CK Main", "ck_store"),
    so any name containing "central" or "kitchen", or starting with a "ck"
    token, counts.
    """
    name = (branch or "").strip().lower()
    if not name:
        return False
    if "central" in name or "kitchen" in name:
        return True
    return _SEPARATORS.split(name)[0] == "ck"
