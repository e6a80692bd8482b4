import functools
import logging

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import cache
from app.config import settings
from app.database import after_commit, get_db
from app.models import User
from app.security import decode_token
from app.services.article_service import ArticleService
from app.services.auth_service import AuthService
from app.stores import SqlArticleStore, SqlUserStore

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class PaginationParams:
    """
    Reusable FastAPI dependency that parses pagination query parameters.

    Attributes
    ----------
    page:
        1-based page number.  Missing or non-positive values are passed on
        as-is; the article service replaces them with its defaults.
    limit:
        Items per page, clamped to ``settings.MAX_PAGE_SIZE``.
    """

    def __init__(
        self,
        page: int | None = Query(None, description="Page number (1-based)."),
        limit: int | None = Query(
            None,
            description=f"Number of items per page (max {settings.MAX_PAGE_SIZE}).",
        ),
    ) -> None:
        self.page = page
        self.limit = min(limit, settings.MAX_PAGE_SIZE) if limit is not None else None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None:
        raise _unauthorized("Missing bearer token")
    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        logger.warning(
            "Access token invalid or expired",
            extra={"event": "access_token_invalid_or_expired"},
        )
        raise _unauthorized("Invalid or expired token")

    if payload.get("type") != "access":
        logger.warning("Access token with invalid type", extra={"event": "access_token_invalid_type"})
        raise _unauthorized("Invalid token type")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        logger.warning("Access token with invalid subject", extra={"event": "access_token_invalid_sub"})
        raise _unauthorized("Invalid token subject")

    user = await SqlUserStore(db).find_by_id(user_id)
    if user is None:
        logger.warning(
            "User not found for token",
            extra={"event": "access_token_user_not_found", "user_id": user_id},
        )
        raise _unauthorized("User not found")
    return user


def get_article_service(db: AsyncSession = Depends(get_db)) -> ArticleService:
    return ArticleService(
        SqlArticleStore(db),
        SqlUserStore(db),
        max_recent_views=settings.RECENT_VIEW_LIMIT,
        default_limit=settings.DEFAULT_PAGE_SIZE,
        cache=cache,
        list_ttl=settings.CACHE_TTL_LIST,
        on_commit=functools.partial(after_commit, db),
    )


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(SqlUserStore(db))
