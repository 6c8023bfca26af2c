# storefront/auth.py
import logging
from typing import Optional

from fastapi import HTTPException, Request, status

from .exceptions import StoreError
from .models import AuthUser

logger = logging.getLogger(__name__)


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


async def require_admin(request: Request) -> AuthUser:
    """Gate for every /admin route; runs before the handler reads the body.

    With ADMIN_EMAILS unset, any user the identity provider accepts is
    treated as admin. That is the staging default; production deployments
    should set the allow-list.
    """
    token = bearer_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    backend = request.app.state.backend
    settings = request.app.state.settings
    try:
        user = await backend.get_user(token)
    except StoreError as e:
        logger.warning(f"Token exchange failed: {e}")
        user = None
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    allowed = settings.admin_emails
    if allowed:
        if (user.email or "").lower() not in allowed:
            logger.warning(f"Admin access denied for {user.email}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    else:
        logger.warning(f"ADMIN_EMAILS is empty; admitting authenticated user {user.email}")

    request.state.user = user
    return user
