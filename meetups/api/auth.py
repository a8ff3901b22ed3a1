# meetups/api/auth.py
import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from meetups.api.dependencies import (
    get_config,
    get_current_user,
    get_security_service,
    get_session_registry,
    get_user_interactor,
)
from meetups.config import AppConfig
from meetups.domain.entities import Identity
from meetups.infrastructure import schemas
from meetups.infrastructure.security import SecurityService
from meetups.interactors.user_interactor import UserInteractor
from meetups.realtime.session_registry import SessionRegistry

router = APIRouter()


@router.post("/login", response_model=schemas.TokenResponse)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    user_interactor: UserInteractor = Depends(get_user_interactor),
    config: AppConfig = Depends(get_config),
    security_service: SecurityService = Depends(get_security_service),
):
    # the form field is called username; it carries the email
    user = await user_interactor.verify_user_password(
        form_data.username, form_data.password
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive user",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token, access_expire = security_service.create_access_token(
        user.id,
        expires_delta=datetime.timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return schemas.TokenResponse(access_token=access_token, expires_at=access_expire)


@router.post("/register", response_model=schemas.User)
async def register_user(
    user: schemas.UserCreate,
    user_interactor: UserInteractor = Depends(get_user_interactor),
):
    new_user = await user_interactor.create_user(user)
    if not new_user:
        raise HTTPException(status_code=400, detail="Email already registered")
    return new_user


@router.post("/logout", status_code=204)
async def logout(
    current_user: Identity = Depends(get_current_user),
    session_registry: SessionRegistry = Depends(get_session_registry),
):
    await session_registry.reset(current_user.id)
