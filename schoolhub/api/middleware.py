"""Rate limiting and CORS for the progression API"""
import logging
from uuid import uuid4
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from schoolhub import config
from schoolhub.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

# Shared by the route decorators; tests flip `enabled`
limiter = Limiter(key_func=get_remote_address, enabled=config.RATE_LIMIT_ENABLED)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the same body shape as SchoolHubError.to_dict()"""
    logger.warning(f"Rate limit hit on {request.url.path} from {get_remote_address(request)}: {exc.detail}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "RateLimitExceeded",
            "message": f"Rate limit exceeded: {exc.detail}",
            "user_message": "Too many requests. Please slow down and try again shortly.",
            "request_id": str(uuid4()),
            "timestamp": now_utc().isoformat(),
        },
    )


def setup_cors(app: FastAPI) -> None:
    """Allow the configured web app origins"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )

    logger.info(f"CORS configured for origins: {config.CORS_ORIGINS}")


def setup_rate_limiting(app: FastAPI) -> None:
    """Attach the limiter and its 429 handler"""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    logger.info(f"Rate limiting {'enabled' if limiter.enabled else 'disabled'}")
