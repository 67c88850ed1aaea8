from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from haven.database import get_db
from haven.services import category_service

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


@router.get("")
async def list_categories(db: AsyncSession = Depends(get_db)):
    return {"categories": await category_service.list_categories(db)}
