import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core import db
from core.blob import S3BlobStore
from core.settings import allowed_origins_from_env, settings_from_env
from products import router as products_router
from products.errors import CatalogError, NotFoundError, StoreError, UploadError, ValidationError
from products.service import ProductCatalog

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    UploadError: 502,
    StoreError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = settings_from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # One pool and one blob client per process, injected into the catalog.
    pool = await db.create_pool(settings.database)
    blob_store = S3BlobStore.from_settings(settings.blob)
    app.state.settings = settings
    app.state.catalog = ProductCatalog(pool, blob_store)
    logger.info("startup_complete container=%s", settings.blob.container)
    try:
        yield
    finally:
        await db.close_pool(pool)


async def catalog_error_handler(_: Request, exc: CatalogError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in _ERROR_STATUS.items() if isinstance(exc, error_type)),
        500,
    )
    if status_code >= 500 and not isinstance(exc, UploadError):
        # Internal details stay in the logs.
        return JSONResponse(status_code=status_code, content={"detail": "Internal server error."})
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


app = FastAPI(title="Product Catalog API", lifespan=lifespan)

# Origins are read at import time so the middleware stack is fixed before startup.
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(allowed_origins_from_env()),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(CatalogError, catalog_error_handler)
app.include_router(products_router.router, tags=["products"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "product catalog api"}
