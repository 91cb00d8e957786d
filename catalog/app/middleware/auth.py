"""Authentication provider.

Resolves the calling ``Subject`` from an ``Authorization: Bearer <api key>``
header. Resolution never raises for a missing or unknown key; it yields
``None`` and leaves the decision to the authorization gate.
"""

import hashlib
from typing import Annotated, Optional

from fastapi import Depends, Request

from catalog.app.core.logging import get_logger
from catalog.app.db.crud import lookup_user_by_hash
from catalog.app.db.dependencies import SessionDep
from catalog.app.services.authorization import Subject

logger = get_logger(__name__)

# Longer keys are rejected before hashing
MAX_API_KEY_LENGTH = 512


def get_bearer_token(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Args:
        request: The incoming request

    Returns:
        The token string if present, None otherwise
    """
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.replace("Bearer ", "", 1).strip() or None


def hash_api_key(api_key: str) -> str:
    """Return the SHA-256 hex digest stored in ``users.api_key_hash``."""
    return hashlib.sha256(api_key.encode()).hexdigest()


async def get_optional_subject(
    request: Request,
    session: SessionDep,
) -> Optional[Subject]:
    """Resolve the current subject, or ``None`` when unauthenticated.

    The result is memoised on ``request.state`` so rate limiting and the
    route handler share one lookup.
    """
    if hasattr(request.state, "subject"):
        return request.state.subject

    subject: Optional[Subject] = None
    token = get_bearer_token(request)
    if token and len(token) <= MAX_API_KEY_LENGTH:
        user = await lookup_user_by_hash(session, hash_api_key(token))
        if user is not None:
            subject = Subject.from_user(user)
        else:
            logger.debug("Bearer token did not match any user")

    request.state.subject = subject
    return subject


OptionalSubjectDep = Annotated[Optional[Subject], Depends(get_optional_subject)]
