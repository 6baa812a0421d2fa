from fastapi import Depends, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from propertyhub.dependencies.auth import RequestContext, require_auth

forum_post_limiter = RateLimiter(times=5, seconds=60)


async def forum_post_rate_limit(
    request: Request,
    response: Response,
    ctx: RequestContext = Depends(require_auth),
) -> None:
    # Limiter is only initialised when REDIS_URL is configured
    if FastAPILimiter.redis is None:
        return
    await forum_post_limiter(request, response)
