from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from haven.database import get_db
from haven.dependencies import ClientInfo, get_client_info
from haven.schemas import SocialLogin
from haven.services import auth_service
from haven.services.user_service import user_to_dict

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/{provider}")
async def social_login(
    provider: str,
    data: SocialLogin,
    response: Response,
    client: ClientInfo = Depends(get_client_info),
    db: AsyncSession = Depends(get_db),
):
    user, token, created = await auth_service.social_login(
        db, provider, data.access_token, client.user_agent, client.ip_address
    )
    response.headers["Authorization"] = token
    if created:
        response.status_code = 201
    return {
        "message": f"{provider} login successful",
        "user": user_to_dict(user),
        "token": token,
    }
