import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quantify.api.v1.api import api_router
from quantify.core.config import settings
from quantify.core.errors import LedgerError
from quantify.core.logging import setup_logging
from quantify.db.mongo import connect_to_mongo, disconnect_from_mongo

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging("api", settings.LOG_LEVEL, settings.LOG_FILE)
    if settings.STORAGE_BACKEND == "mongo":
        await connect_to_mongo()
    else:
        logger.info("Using %s storage backend", settings.STORAGE_BACKEND)
    yield
    if settings.STORAGE_BACKEND == "mongo":
        await disconnect_from_mongo()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/")
async def root():
    return {"message": "Welcome to Quantify API"}


@app.get("/health")
async def health():
    return {"status": "ok", "storage": settings.STORAGE_BACKEND}


app.include_router(api_router, prefix=settings.API_V1_STR)
