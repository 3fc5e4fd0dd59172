"""번역 엔진 API 라우트"""

from typing import Annotated

from fastapi import APIRouter, Depends

from screentranslate.container import Services
from screentranslate.routes.deps import get_services
from screentranslate.schemas.base import BaseSchema
from screentranslate.schemas.engine import EngineType

router = APIRouter(prefix="/engines", tags=["engines"])


class EngineInfo(BaseSchema):
    engine: EngineType
    name: str
    requires_api_key: bool
    configured: bool


class EnginesResponse(BaseSchema):
    registered: list[EngineType]
    available: list[EngineType]
    engines: list[EngineInfo]


class ConnectionResponse(BaseSchema):
    engine: EngineType
    ok: bool


@router.get("", response_model=EnginesResponse)
async def list_engines(services: Annotated[Services, Depends(get_services)]) -> EnginesResponse:
    """등록/사용 가능 엔진 목록"""
    registry = services.registry
    engines = [
        EngineInfo(
            engine=engine,
            name=engine.display_name,
            requires_api_key=engine.requires_api_key,
            configured=await registry.is_engine_configured(engine),
        )
        for engine in EngineType
    ]
    return EnginesResponse(
        registered=await registry.registered_engines(),
        available=await registry.available_engines(),
        engines=engines,
    )


@router.get("/{engine}/connection", response_model=ConnectionResponse)
async def check_connection(
    engine: EngineType, services: Annotated[Services, Depends(get_services)]
) -> ConnectionResponse:
    """엔진 연결 확인 (고정 문장 번역)"""
    ok = await services.orchestrator.test_connection(engine)
    return ConnectionResponse(engine=engine, ok=ok)
