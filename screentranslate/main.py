import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from screentranslate.config import get_settings
from screentranslate.container import build_services
from screentranslate.routes.engines import router as engines_router
from screentranslate.routes.translate import router as translate_router

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    async with httpx.AsyncClient() as client:
        app.state.services = await build_services(settings, client)
        yield
        app.state.services.flow.cancel()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    max_age=600,
)

app.include_router(translate_router)
app.include_router(engines_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
