import re

APOSTROPHE_VARIANTS = ("’", "‘", "׳", "`", "´")

_WHITESPACE = re.compile(r"\s+")
_SPACED_HYPHEN = re.compile(r"\s*-\s*")


def normalize_name(text: str | None) -> str:
    """Canonical comparison key for a settlement name.

    Trims, collapses whitespace, removes spaces around hyphens, folds
    apostrophe variants (including the Hebrew geresh) to "'" and lower-cases.
    Idempotent.
    """
    if not text:
        return ""
    key = _WHITESPACE.sub(" ", text.strip())
    key = _SPACED_HYPHEN.sub("-", key)
    for variant in APOSTROPHE_VARIANTS:
        key = key.replace(variant, "'")
    return key.lower()


def clean_field(value) -> str | None:
    """Trim a raw field value; blank or missing values become None."""
    if value is None:
        return None
    s = str(value).strip()
    return s or None
