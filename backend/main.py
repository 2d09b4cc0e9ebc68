from fastapi import FastAPI, Request
import logging
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from core.auth import fastapi_users, auth_backend
from core.config import settings
from core.logging import setup_logging
from db.database import async_session_maker, create_db_and_tables
from db.migrations import seed_location_grid, seed_required_locations
from routers.locations import router as locations_router
from routers.movements import router as movements_router
from routers.products import router as products_router
from routers.reports import router as reports_router
from routers.stock import router as stock_router
from schemas.users import UserRead, UserCreate, UserUpdate
from services.errors import LedgerError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    await create_db_and_tables()
    async with async_session_maker() as db:
        if settings.seed_location_grid:
            await seed_location_grid(db)
        await seed_required_locations(db)
    yield


app = FastAPI(
    title="Warehouse Stock Ledger API",
    description="Inventory movements per storage compartment, with stock derived from the movement ledger",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"],)
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

# Ledger routes
app.include_router(locations_router, prefix="/locations", tags=["locations"])
app.include_router(products_router, prefix="/products", tags=["products"])
app.include_router(movements_router, prefix="/movements", tags=["movements"])
app.include_router(stock_router, prefix="/stock", tags=["stock"])
app.include_router(reports_router, prefix="/reports", tags=["reports"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
