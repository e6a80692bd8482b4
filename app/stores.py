"""
Record stores - the persistence seam between the services and SQLAlchemy.

The services depend only on the ``UserStore`` / ``ArticleStore`` protocols.
The ``Sql*`` implementations below work on the request's ``AsyncSession``;
like the rest of the service layer they flush but never commit (the
``get_db`` dependency owns the transaction).

Every SQL implementation method translates ``SQLAlchemyError`` into
``StoreUnavailable`` so callers see a single infrastructure failure kind.
"""
from __future__ import annotations

import functools
from datetime import datetime
from typing import Any, Callable, Protocol, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import EmailAlreadyRegistered, StoreUnavailable
from app.models import Article, User, utcnow

# Primary keys are 32-bit ``Integer`` columns; LIMIT and OFFSET bind as
# signed 64-bit values.  Anything larger cannot name a stored row.
MAX_ID = 2**31 - 1
MAX_OFFSET = 2**63 - 1


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

class UserStore(Protocol):
    async def create(self, email: str, password_hash: str) -> User: ...

    async def find_by_email(self, email: str) -> User | None: ...

    async def find_by_id(self, user_id: int) -> User | None: ...

    async def set_recent_views(self, user_id: int, ids: Sequence[int]) -> list[int]: ...


class ArticleStore(Protocol):
    async def create(self, owner_id: int, title: str, content: str) -> Article: ...

    async def find_by_id(self, article_id: int) -> Article | None: ...

    async def find_by_owner(
        self, owner_id: int, limit: int, offset: int
    ) -> tuple[list[Article], int]: ...

    async def update(self, article_id: int, fields: dict[str, Any]) -> Article | None: ...

    async def delete(self, article_id: int) -> None: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _storable_id(record_id: int) -> bool:
    return 0 < record_id <= MAX_ID


def _translate_errors(method):
    @functools.wraps(method)
    async def wrapper(*args, **kwargs):
        try:
            return await method(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"{method.__qualname__} failed: {exc}") from exc

    return wrapper


# ---------------------------------------------------------------------------
# SQLAlchemy implementations
# ---------------------------------------------------------------------------

class SqlUserStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, email: str, password_hash: str) -> User:
        user = User(email=email, password_hash=password_hash, recent_views=[])
        self._session.add(user)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same email.
            raise EmailAlreadyRegistered(email) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"SqlUserStore.create failed: {exc}") from exc
        return user

    @_translate_errors
    async def find_by_email(self, email: str) -> User | None:
        result = await self._session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @_translate_errors
    async def find_by_id(self, user_id: int) -> User | None:
        if not _storable_id(user_id):
            return None
        return await self._session.get(User, user_id)

    @_translate_errors
    async def set_recent_views(self, user_id: int, ids: Sequence[int]) -> list[int]:
        if not _storable_id(user_id):
            return []
        user = await self._session.get(User, user_id)
        if user is None:
            return []
        user.recent_views = list(ids)
        await self._session.flush()
        return list(user.recent_views)


class SqlArticleStore:
    """
    Article persistence.  *clock* supplies ``created_at`` / ``updated_at``
    so a freshly created article carries two identical timestamps.
    """

    def __init__(
        self, session: AsyncSession, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self._session = session
        self._clock = clock

    @_translate_errors
    async def create(self, owner_id: int, title: str, content: str) -> Article:
        now = self._clock()
        article = Article(
            user_id=owner_id,
            title=title,
            content=content,
            created_at=now,
            updated_at=now,
        )
        self._session.add(article)
        await self._session.flush()
        return article

    @_translate_errors
    async def find_by_id(self, article_id: int) -> Article | None:
        if not _storable_id(article_id):
            return None
        return await self._session.get(Article, article_id)

    @_translate_errors
    async def find_by_owner(
        self, owner_id: int, limit: int, offset: int
    ) -> tuple[list[Article], int]:
        count_q = select(func.count()).select_from(Article).where(Article.user_id == owner_id)
        total: int = (await self._session.execute(count_q)).scalar_one()

        items_q = (
            select(Article)
            .where(Article.user_id == owner_id)
            .order_by(Article.created_at.desc(), Article.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(items_q)
        return list(result.scalars().all()), total

    @_translate_errors
    async def update(self, article_id: int, fields: dict[str, Any]) -> Article | None:
        if not _storable_id(article_id):
            return None
        article = await self._session.get(Article, article_id)
        if article is None:
            return None
        for name, value in fields.items():
            setattr(article, name, value)
        article.updated_at = self._clock()
        await self._session.flush()
        return article

    @_translate_errors
    async def delete(self, article_id: int) -> None:
        if not _storable_id(article_id):
            return
        article = await self._session.get(Article, article_id)
        if article is None:
            return
        await self._session.delete(article)
        await self._session.flush()
