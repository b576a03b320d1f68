"""
Code list and pool name validation.

Codes are stripped of surrounding whitespace before any check, so " A1" and
"A1" count as the same code.
"""

from codepool.config import settings
from codepool.errors import InvalidInput


def normalize_codes(codes: list[str], *, allow_empty: bool = False) -> list[str]:
    """
    Validate a submitted code list and return it stripped, order preserved.

    Raises InvalidInput on an empty list (unless allow_empty), a blank or
    over-length code, too many codes, or duplicates (set size vs. list size).
    """
    if not codes and not allow_empty:
        raise InvalidInput("At least one code is required", field="codes")

    if len(codes) > settings.max_codes_per_pool:
        raise InvalidInput(
            f"Maximum {settings.max_codes_per_pool:,} codes per pool", field="codes"
        )

    cleaned: list[str] = []
    for code in codes:
        if not isinstance(code, str) or not code.strip():
            raise InvalidInput("All codes must be non-empty strings", field="codes")
        value = code.strip()
        if len(value) > settings.max_code_length:
            raise InvalidInput(
                f"Codes must be {settings.max_code_length} characters or less", field="codes"
            )
        cleaned.append(value)

    if len(set(cleaned)) != len(cleaned):
        raise InvalidInput("Code pool contains duplicate codes", field="codes")

    return cleaned


def normalize_name(name: str | None) -> str:
    value = (name or "").strip()
    if not value:
        raise InvalidInput("Pool name is required", field="name")
    if len(value) > settings.max_pool_name_length:
        raise InvalidInput(
            f"Pool name must be {settings.max_pool_name_length} characters or less",
            field="name",
        )
    return value
