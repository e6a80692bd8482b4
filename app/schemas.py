from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime


# --- Auth ---

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# --- User ---

class UserResponse(BaseModel):
    id: int
    email: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Article ---

class ArticleCreate(BaseModel):
    # Emptiness is checked by the article service (400), not here (422).
    title: str = Field(max_length=300)
    content: str


class ArticleUpdate(BaseModel):
    title: str | None = Field(None, max_length=300)
    content: str | None = None


class ArticleResponse(BaseModel):
    id: int
    user_id: int
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Pagination ---

class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class ArticleListResponse(BaseModel):
    items: list[ArticleResponse]
    meta: PaginationMeta


class RecentlyViewedResponse(BaseModel):
    items: list[ArticleResponse]
