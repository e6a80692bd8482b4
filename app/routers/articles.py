from fastapi import APIRouter, Depends

from app.dependencies import PaginationParams, get_article_service, get_current_user
from app.models import User
from app.schemas import (
    ArticleCreate,
    ArticleListResponse,
    ArticleResponse,
    ArticleUpdate,
    RecentlyViewedResponse,
)
from app.services.article_service import ArticlePatch, ArticleService

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])

@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(
    data: ArticleCreate,
    user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    return await service.create(user.id, data.title, data.content)

@router.get("", response_model=ArticleListResponse)
async def list_articles(
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    return await service.list_articles(user.id, pagination.page, pagination.limit)

# Registered before "/{article_id}" so the literal path wins.
@router.get("/recently-viewed", response_model=RecentlyViewedResponse)
async def recently_viewed(
    user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    articles = await service.recently_viewed(user.id)
    return RecentlyViewedResponse(items=[ArticleResponse.model_validate(a) for a in articles])

@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(
    article_id: int,
    user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    return await service.view(user.id, article_id)

@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: int,
    data: ArticleUpdate,
    user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    return await service.update(user.id, article_id, ArticlePatch.from_update(data))

@router.delete("/{article_id}", status_code=204)
async def delete_article(
    article_id: int,
    user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    await service.delete(user.id, article_id)
