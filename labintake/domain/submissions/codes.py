"""Human-shareable submission codes.

A code is a fixed-length, mixed-case alphanumeric string drawn from the
`secrets` CSPRNG. It is assigned once per submission and is the external handle
for the summary view, so it must be unique across all records.
"""

import logging
import secrets
import string
from typing import Awaitable, Callable, Optional

from .errors import CodeGenerationError

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_letters + string.digits
DEFAULT_CODE_LENGTH = 4
DEFAULT_MAX_ATTEMPTS = 20


def generate_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """Generate a random code of the given length."""
    if length < 1:
        raise ValueError("Code length must be at least 1")
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def is_valid_code(code: Optional[str], length: int = DEFAULT_CODE_LENGTH) -> bool:
    """Check a code's shape (used to reject junk before hitting the database)."""
    if not code or len(code) != length:
        return False
    return all(c in CODE_ALPHABET for c in code)


async def generate_unique_code(
    is_taken: Callable[[str], Awaitable[bool]],
    length: int = DEFAULT_CODE_LENGTH,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    generator: Callable[[int], str] = generate_code,
) -> str:
    """Generate a code that `is_taken` reports as free.

    Args:
        is_taken: Async predicate backed by the repository
        length: Code length
        max_attempts: Regeneration budget before giving up
        generator: Code source (overridable for tests)

    Returns:
        str: A code not currently used by any record

    Raises:
        CodeGenerationError: If every attempt collided
    """
    for attempt in range(1, max_attempts + 1):
        code = generator(length)
        if not await is_taken(code):
            return code
        logger.info(f"Submission code collision, regenerating (attempt={attempt})")

    raise CodeGenerationError(
        f"Could not generate a unique submission code in {max_attempts} attempts"
    )
