from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from haven.database import get_db
from haven.dependencies import ClientInfo, CurrentUser, get_client_info, get_current_user
from haven.schemas import LoginRequest, PasswordReset, PasswordResetRequest, UserCreate
from haven.services import article_service, auth_service, user_service
from haven.services.user_service import user_to_dict

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("/create", status_code=201)
async def create_user(
    data: UserCreate,
    response: Response,
    client: ClientInfo = Depends(get_client_info),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.create_user(db, data)
    token = await auth_service.create_session(db, user, client.user_agent, client.ip_address)
    await auth_service.send_verification(user)
    response.headers["Authorization"] = token
    return {"message": "user created successfully", "user": user_to_dict(user), "token": token}


@router.post("/login")
async def login(
    data: LoginRequest,
    response: Response,
    client: ClientInfo = Depends(get_client_info),
    db: AsyncSession = Depends(get_db),
):
    user, token = await auth_service.login(db, data, client.user_agent, client.ip_address)
    response.headers["Authorization"] = token
    return {"message": "login successful", "user": user_to_dict(user), "token": token}


@router.post("/logout")
async def logout(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.logout(db, current.session)
    return {"message": "logout successful"}


@router.get("/verify")
async def verify_email(token: str = Query(..., min_length=1), db: AsyncSession = Depends(get_db)):
    return {"message": await auth_service.verify_email(db, token)}


@router.post("/verify/resend")
async def resend_verification(current: CurrentUser = Depends(get_current_user)):
    if current.user.verified:
        return {"message": "email already verified"}
    await auth_service.send_verification(current.user)
    return {"message": "verification email sent"}


@router.post("/reset-password")
async def request_password_reset(data: PasswordResetRequest, db: AsyncSession = Depends(get_db)):
    await auth_service.request_password_reset(db, data.email)
    return {"message": "password reset link sent to your email"}


@router.patch("/reset-password/{token}")
async def reset_password(token: str, data: PasswordReset, db: AsyncSession = Depends(get_db)):
    await auth_service.reset_password(db, token, data.password)
    return {"message": "password reset successful"}


@router.get("/me")
async def get_me(current: CurrentUser = Depends(get_current_user)):
    return {"user": user_to_dict(current.user)}


@router.get("/me/articles")
async def my_articles(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"articles": await article_service.get_user_articles(db, current.id)}


@router.get("/{user_name}")
async def get_profile(user_name: str, db: AsyncSession = Depends(get_db)):
    return {"profile": await user_service.get_profile(db, user_name)}
