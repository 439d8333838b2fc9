"""
Short ID allocation for public artifact links.
Random fixed-length base62 identifiers with bounded collision retries.
"""
import re
import secrets
import string
from typing import Callable
from loguru import logger
from snappd.core import config
from snappd.core.exceptions import ShortIdAllocationException

# 62 characters: digits, lower and upper case letters
SHORT_ID_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase

_SHORT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{6}$")


def is_valid_short_id(value: str) -> bool:
    """Check that an externally supplied short ID is well formed."""
    return bool(value) and _SHORT_ID_PATTERN.match(value) is not None


class ShortIdAllocator:
    """Generates short IDs that are free according to a caller-supplied check."""

    def __init__(self, length: int = None, max_attempts: int = None):
        self.length = length or config.settings.short_id_length
        self.max_attempts = max_attempts or config.settings.short_id_max_attempts

    def generate(self) -> str:
        return ''.join(secrets.choice(SHORT_ID_ALPHABET) for _ in range(self.length))

    def allocate(self, exists_check: Callable[[str], bool]) -> str:
        """
        Produce a short ID that ``exists_check`` reports as unused.

        Args:
            exists_check: Returns True when the candidate is already taken

        Returns:
            Unused short ID

        Raises:
            ShortIdAllocationException: If every attempt collided
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.generate()
            if not exists_check(candidate):
                return candidate
            logger.warning(
                "Short ID collision detected: {} (attempt {}/{})",
                candidate, attempt, self.max_attempts
            )

        raise ShortIdAllocationException(
            f"Failed to generate unique short ID after {self.max_attempts} attempts"
        )
