from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.config.config import Settings
from app.routers.files import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    json_api: bool
    template_index: bool


@router.get("/health", response_model=HealthResponse)
async def health(settings: Annotated[Settings, Depends(get_settings)]) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        json_api=settings.service.json_api,
        template_index=settings.service.template_index,
    )
