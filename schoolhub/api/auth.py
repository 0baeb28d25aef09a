"""Bearer API-key check for the progression routes"""
import logging
import secrets
from fastapi import HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from schoolhub import config

logger = logging.getLogger(__name__)

security = HTTPBearer()


def is_known_api_key(candidate: str) -> bool:
    """Compare against every configured key in constant time"""
    return any(secrets.compare_digest(candidate, key) for key in config.API_KEYS)


async def verify_api_key(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """
    Verify the bearer key sent by the SchoolHub web app

    Raises:
        HTTPException: 503 if API_KEYS is empty, 401 if the key is unknown
    """
    if not config.API_KEYS:
        logger.error("API_KEYS is empty - progression routes are disabled")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="API authentication not configured"
        )

    if not is_known_api_key(credentials.credentials):
        logger.warning(f"Rejected API key on {request.method} {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return credentials.credentials
