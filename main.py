from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from infrastructure.config import settings
from infrastructure.database.manager import DatabaseManager
from infrastructure.exceptions.handler import BusinessException, global_exception_handler
from infrastructure.logging.logger import LogConfig, get_logger
from infrastructure.middleware.trace_md import TraceMiddleware
from apps.parking.api.router import router as parking_router

LogConfig.setup_logging()
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check the database on startup; release the engine on shutdown."""
    manager = DatabaseManager.get_instance()
    await manager.sql.connect()
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started ({settings.APP_ENV})")
    yield
    await DatabaseManager.shutdown()


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_exception_handler(BusinessException, global_exception_handler)
app.add_exception_handler(RequestValidationError, global_exception_handler)
app.add_exception_handler(ValueError, global_exception_handler)
app.add_exception_handler(SQLAlchemyError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(TraceMiddleware)

app.include_router(
    parking_router,
    prefix=settings.API_V1_PARKING_PREFIX,
    tags=["Parking"]
)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
