# photobooth/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from concurrent.futures import ThreadPoolExecutor
import logging
import os

from photobooth.config.settings import settings
from photobooth.delivery.api import composite, templates
from photobooth.domain.composite_service import CompositeService
from photobooth.infrastructure.storage.output_store import OutputStore
from photobooth.infrastructure.storage.template_store import TemplateStore

logger = logging.getLogger("uvicorn.error")

@asynccontextmanager
async def lifespan(app: FastAPI):
    max_workers = min(settings.MAX_WORKERS, os.cpu_count() or 1)
    app.state.executor = ThreadPoolExecutor(max_workers=max_workers)
    app.state.composite_service = CompositeService(
        store=TemplateStore(settings.TEMPLATES_DIR),
        outputs=OutputStore(settings.OUTPUT_DIR),
        cpu_executor=app.state.executor,
    )
    logger.info(f"Service '{settings.PROJECT_NAME}' dimulai (mode: {settings.ENVIRONMENT}).")
    logger.info(f"Shared ThreadPoolExecutor dibuat dengan {max_workers} workers.")
    yield
    logger.info("Menutup ThreadPoolExecutor...")
    app.state.executor.shutdown(wait=True)
    logger.info("Service berhenti.")

app = FastAPI(
    title="Photobooth Border Service",
    description="Border template storage and compositing of captured photos into polaroid-style frames",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(templates.router, prefix=settings.API_V1_STR)
app.include_router(composite.router, prefix=settings.API_V1_STR)

@app.get("/")
async def root():
    return {"message": "Photobooth Border Service", "version": "1.0.0", "status": "ok"}

@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "Photobooth 1.0", "service_ready": hasattr(app.state, "composite_service")}
