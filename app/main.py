import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.dependencies import verify_api_key
from app.routers.sessions import router as sessions_router
from app.routers.view import router as view_router
from app.utils.exceptions import register_exception_handlers

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.openai_api_key:
        logger.error("OPENAI_API_KEY not configured: image analysis requests will be refused")
    yield
    client = getattr(app.state, "analysis_client", None)
    if client is not None:
        await client.client.close()


app = FastAPI(
    title="Embryo Analysis API",
    description="Vision-model embryo image analysis with PDF report export",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

_api_key_dep = [Depends(verify_api_key)]

app.include_router(sessions_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(view_router)


@app.get("/health")
async def health_check():
    return {
        "status": "success",
        "data": {
            "service": "embryo-analysis-api",
            "version": "0.1.0",
            "openai_configured": bool(settings.openai_api_key),
        },
        "message": None,
    }
