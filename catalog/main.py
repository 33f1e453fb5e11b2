import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from catalog.api.endpoints import images, products
from catalog.errors import (
    CatalogError,
    EnrichmentError,
    InvalidValueError,
    ProductNotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Product Catalog Engine")

app.include_router(products.router, prefix="/api/products", tags=["Products"])
app.include_router(images.router, prefix="/api/images", tags=["Images"])

_STATUS_BY_ERROR = (
    (ProductNotFoundError, 404),
    (InvalidValueError, 400),
    (EnrichmentError, 502),
    (StorageError, 500),
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    status_code = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content={"error": exc.message, **exc.to_dict()})


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
