from fastapi import APIRouter, Depends

from app.dependencies import get_auth_service, get_current_user
from app.models import User
from app.schemas import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from app.services.auth_service import AuthService

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

@router.post("/register", status_code=201, response_model=UserResponse)
async def register(data: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    return await service.register(data.email, data.password)

@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    return TokenResponse(access_token=await service.login(data.email, data.password))

@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return user
