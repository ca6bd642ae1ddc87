"""External draft reference carried in the client's address.

The reference is a positive integer draft id. Anything else (missing,
non-numeric, zero, negative, padded garbage, larger than the id column can
hold) means "no draft yet" and is never reported as an error.
"""

import re
from typing import Optional, Union

_REFERENCE_RE = re.compile(r"^[0-9]+$")

# Upper bound of the `submissions.id` column (signed 32-bit integer)
MAX_DRAFT_ID = 2**31 - 1


def parse_reference(raw: Union[str, int, None]) -> Optional[int]:
    """Normalize an external reference to a draft id or None.

    Example:
        >>> parse_reference("42")
        42
        >>> parse_reference("0") is None
        True
        >>> parse_reference("abc") is None
        True
        >>> parse_reference("99999999999999999999") is None
        True
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, int):
        value = raw
    else:
        text = str(raw).strip()
        if not _REFERENCE_RE.match(text):
            return None
        value = int(text)

    return value if 0 < value <= MAX_DRAFT_ID else None
