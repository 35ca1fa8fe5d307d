import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.core.errors import LedgerError
from app.core.logging_config import setup_logging
from app.core.redis import get_redis, close_redis
from app.routers import balances, portfolio, transfers, trades, market, admin

setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_redis()
    yield
    await close_redis()

app = FastAPI(title="Ledger API", lifespan=lifespan)

_allowed_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] or ["http://localhost:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.error_code, exc.message)
    content = {"error": exc.error_code, "message": exc.message}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)

app.include_router(balances.router)
app.include_router(portfolio.router)
app.include_router(transfers.router)
app.include_router(trades.router)
app.include_router(market.router)
app.include_router(admin.router)

@app.get("/health")
async def health():
    return {"status": "ok"}
