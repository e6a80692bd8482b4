"""
Article service - ownership-checked access to a user's articles and the
per-user "recently viewed" list.

Design notes
------------
- Every read or write of a single article goes through ``fetch_owned``.
  A missing article raises ``NotFound``; an article owned by somebody else
  raises ``Forbidden``.  The two stay distinct here; whether a client can
  tell them apart is decided by the router layer.
- ``view`` is the detail read.  After the ownership check it moves the
  article to the front of the viewer's ``recent_views``.  That step is
  best-effort: a missing user record or a store failure is logged and the
  view still succeeds.  Concurrent views by the same user may lose one
  update (read-then-write, no locking).
- ``recently_viewed`` resolves ids lazily and in order, silently skipping
  ids whose article was deleted or no longer belongs to the user.
- List pages go through the cache-aside pattern when a ``CacheManager`` is
  supplied; any write by an owner invalidates that owner's pages, once
  straight away and once more after the commit when ``on_commit`` is given.
- The service only talks to the ``UserStore`` / ``ArticleStore`` protocols
  and never commits; the transaction boundary belongs to ``get_db``.
"""
import functools
import logging
import math
from dataclasses import dataclass, fields
from typing import AsyncIterator, Awaitable, Callable, Iterable, Union

from app.cache import CacheManager, list_cache_key
from app.exceptions import Forbidden, InvalidInput, NotFound, StoreUnavailable
from app.models import Article
from app.schemas import ArticleListResponse, ArticleResponse, ArticleUpdate, PaginationMeta
from app.stores import MAX_OFFSET, ArticleStore, UserStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_MAX_RECENT_VIEWS = 10
DEFAULT_LIST_TTL = 60


# ---------------------------------------------------------------------------
# Partial updates
# ---------------------------------------------------------------------------

class _Missing:
    """Marks a patch field that was not supplied at all."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

PatchValue = Union[str, None, _Missing]

OnCommit = Callable[[Callable[[], Awaitable[None]]], None]


@dataclass(frozen=True)
class ArticlePatch:
    """
    A partial article update.

    A field left at ``MISSING`` is not touched.  Any other value, including
    ``None`` or an empty string, counts as supplied and must be non-empty.
    """

    title: PatchValue = MISSING
    content: PatchValue = MISSING

    @classmethod
    def from_update(cls, data: ArticleUpdate) -> "ArticlePatch":
        return cls(**data.model_dump(exclude_unset=True))

    def supplied(self) -> dict[str, str | None]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not MISSING
        }


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def _positive_or(value: int | None, default: int) -> int:
    if value is None or value <= 0:
        return default
    return value


def push_recent(ids: Iterable[int], article_id: int, limit: int) -> list[int]:
    """
    Return *ids* with *article_id* moved (or inserted) at the front,
    truncated to *limit* entries.
    """
    return ([article_id] + [i for i in ids if i != article_id])[:limit]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ArticleService:
    def __init__(
        self,
        articles: ArticleStore,
        users: UserStore,
        *,
        max_recent_views: int = DEFAULT_MAX_RECENT_VIEWS,
        default_limit: int = DEFAULT_LIMIT,
        cache: CacheManager | None = None,
        list_ttl: int = DEFAULT_LIST_TTL,
        on_commit: OnCommit | None = None,
    ) -> None:
        """
        *on_commit* queues a coroutine function to run once the caller's
        transaction has committed.  With a cache it is used to drop the
        owner's list pages a second time, after the write is visible.
        """
        if max_recent_views < 1:
            raise ValueError("max_recent_views must be at least 1")
        if default_limit < 1:
            raise ValueError("default_limit must be at least 1")
        self._articles = articles
        self._users = users
        self._cache = cache
        self._list_ttl = list_ttl
        self._on_commit = on_commit
        self.max_recent_views = max_recent_views
        self.default_limit = default_limit

    # ------------------------------------------------------------------
    # Ownership-checked access
    # ------------------------------------------------------------------

    async def fetch_owned(self, requester_id: int, article_id: int) -> Article:
        article = await self._articles.find_by_id(article_id)
        if article is None:
            raise NotFound("Article", article_id)
        if article.user_id != requester_id:
            logger.info(
                "Article access denied",
                extra={
                    "event": "article_access_forbidden",
                    "user_id": requester_id,
                    "article_id": article_id,
                },
            )
            raise Forbidden(requester_id, article_id)
        return article

    async def view(self, viewer_id: int, article_id: int) -> Article:
        """Ownership-checked detail read that also records the view."""
        article = await self.fetch_owned(viewer_id, article_id)
        await self._track_view(viewer_id, article_id)
        return article

    async def create(self, owner_id: int, title: str, content: str) -> Article:
        if _is_blank(title):
            raise InvalidInput("Title is required")
        if _is_blank(content):
            raise InvalidInput("Content is required")

        article = await self._articles.create(owner_id, title, content)
        await self._invalidate_lists(owner_id)
        logger.info(
            "Article created",
            extra={"event": "article_created", "user_id": owner_id, "article_id": article.id},
        )
        return article

    async def update(self, requester_id: int, article_id: int, patch: ArticlePatch) -> Article:
        """
        Apply *patch* to an owned article.  An empty patch returns the
        article untouched, ``updated_at`` included.
        """
        article = await self.fetch_owned(requester_id, article_id)

        changes = patch.supplied()
        if not changes:
            return article
        for name, value in changes.items():
            if _is_blank(value):
                raise InvalidInput(f"{name.capitalize()}, if provided, cannot be empty")

        updated = await self._articles.update(article_id, changes)
        if updated is None:
            # Deleted between the ownership check and the write.
            raise NotFound("Article", article_id)
        await self._invalidate_lists(requester_id)
        return updated

    async def delete(self, requester_id: int, article_id: int) -> None:
        await self.fetch_owned(requester_id, article_id)
        await self._articles.delete(article_id)
        await self._invalidate_lists(requester_id)
        logger.info(
            "Article deleted",
            extra={"event": "article_deleted", "user_id": requester_id, "article_id": article_id},
        )

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    async def list_articles(
        self, owner_id: int, page: int | None = None, limit: int | None = None
    ) -> ArticleListResponse:
        """
        Return one page of the owner's articles, newest first.

        *page* and *limit* fall back to 1 and ``default_limit`` when absent
        or not positive.  A page past the end, however far, is empty but
        still reports the true ``total`` and ``total_pages``.
        """
        page = _positive_or(page, DEFAULT_PAGE)
        limit = _positive_or(limit, self.default_limit)

        cache_key = list_cache_key(owner_id, page, limit)
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if cached:
                return ArticleListResponse(**cached)

        # No table holds MAX_OFFSET rows, so the capped query is still empty.
        offset = min((page - 1) * limit, MAX_OFFSET)
        items, total = await self._articles.find_by_owner(owner_id, min(limit, MAX_OFFSET), offset)
        response = ArticleListResponse(
            items=[ArticleResponse.model_validate(a) for a in items],
            meta=PaginationMeta(
                total=total,
                page=page,
                limit=limit,
                total_pages=math.ceil(total / limit),
            ),
        )

        if self._cache is not None:
            await self._cache.set(cache_key, response.model_dump(mode="json"), ttl=self._list_ttl)
        return response

    async def _invalidate_lists(self, owner_id: int) -> None:
        if self._cache is None:
            return
        await self._cache.invalidate_owner_lists(owner_id)
        if self._on_commit is not None:
            # A reader between now and the commit may re-cache the old page.
            self._on_commit(functools.partial(self._cache.invalidate_owner_lists, owner_id))

    # ------------------------------------------------------------------
    # Recently viewed
    # ------------------------------------------------------------------

    async def _track_view(self, viewer_id: int, article_id: int) -> None:
        try:
            user = await self._users.find_by_id(viewer_id)
            if user is None:
                logger.debug("Viewer %s not found, recent views not updated", viewer_id)
                return
            recent = push_recent(user.recent_views or [], article_id, self.max_recent_views)
            await self._users.set_recent_views(viewer_id, recent)
        except StoreUnavailable as exc:
            logger.warning(
                "Recent views update skipped: %s",
                exc,
                extra={"event": "recent_views_update_failed", "user_id": viewer_id},
            )

    async def _resolve_recent(self, user_id: int, ids: Iterable[int]) -> AsyncIterator[Article]:
        for article_id in ids:
            try:
                article = await self._articles.find_by_id(article_id)
            except StoreUnavailable as exc:
                logger.warning(
                    "Skipping recently viewed article %s: %s",
                    article_id,
                    exc,
                    extra={"event": "recent_view_resolve_failed", "user_id": user_id},
                )
                continue
            if article is not None and article.user_id == user_id:
                yield article

    async def recently_viewed(self, user_id: int) -> list[Article]:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise NotFound("User", user_id)
        ids = tuple(user.recent_views or ())
        return [article async for article in self._resolve_recent(user_id, ids)]
