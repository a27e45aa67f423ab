"""Public token generation for published forms."""

from __future__ import annotations

import logging
import secrets
import string
from typing import Callable

from formflow.logic.errors import StorageError
from formflow.logic.storage_gateway import StorageGateway

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_lowercase + string.digits
DEFAULT_TOKEN_LENGTH = 10
MAX_ATTEMPTS = 5


def generate_public_token(length: int = DEFAULT_TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def allocate_public_token(gateway: StorageGateway, factory: Callable[[], str]) -> str:
    """Return a token not used by any form, trying a bounded number of times."""
    for attempt in range(1, MAX_ATTEMPTS + 1):
        token = factory()
        if token and not gateway.select("forms", {"public_url": token}):
            return token
        logger.warning("public_token_collision attempt=%s", attempt)
    raise StorageError(f"could not allocate a unique public token after {MAX_ATTEMPTS} attempts")


__all__ = ["TOKEN_ALPHABET", "generate_public_token", "allocate_public_token"]
