"""Translate pre-bill errors into HTTP responses.

Pre-bill errors are protean exceptions, so protean's handlers give them
their status codes. The one error protean has no status for is an
unreachable catalog, answered with 503.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers as register_protean_handlers

from prebill.errors import CatalogUnavailable


async def catalog_unavailable_handler(_request: Request, exc: CatalogUnavailable) -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    register_protean_handlers(app)
    app.add_exception_handler(CatalogUnavailable, catalog_unavailable_handler)
