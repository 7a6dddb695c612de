from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from catalog.config import settings
from catalog.database import async_engine, Base
from catalog.exceptions import (
    AuthenticationError, DatabaseError, ProductNotFoundError, ProductValidationError
)
from catalog.logging_config import get_child_logger
from catalog.api import products
from catalog.models import file, product, sale  # noqa: F401 - register tables on Base.metadata

logger = get_child_logger("main")

app = FastAPI(
    title=settings.api_title,
    description="API for managing the product catalog",
    version=settings.api_version,
)

# Include routers
app.include_router(products.router)


@app.on_event("startup")
async def startup_event():
    # Schema is normally managed outside the service; this is for local runs
    if settings.create_tables:
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")


@app.on_event("shutdown")
async def shutdown_event():
    await async_engine.dispose()


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(ProductValidationError)
async def product_validation_exception_handler(request: Request, exc: ProductValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(AuthenticationError)
async def authentication_exception_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(
        status_code=401,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(ProductNotFoundError)
async def not_found_exception_handler(request: Request, exc: ProductNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DatabaseError)
async def database_exception_handler(request: Request, exc: DatabaseError):
    return JSONResponse(status_code=500, content={"detail": "A database error occurred."})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )
