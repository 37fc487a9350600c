import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.services.game.service import Actor
from app.services.identity import get_token_verifier

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


async def get_current_actor(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> Actor:
    """Resolve the caller's identity and network origin.

    Raises HTTPException 401 if the bearer token is missing or invalid.
    """
    if credentials is None:
        logger.warning("Authentication failed: missing authorization header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error_code": "UNAUTHENTICATED", "message": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await get_token_verifier().validate_token(credentials.credentials)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error_code": "UNAUTHENTICATED", "message": result.error},
            headers={"WWW-Authenticate": "Bearer"},
        )

    client_ip = request.client.host if request.client else None
    logger.debug("Authenticated actor %s from %s", result.uid, client_ip)
    return Actor(uid=result.uid, ip=client_ip)


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
