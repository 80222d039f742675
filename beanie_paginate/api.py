"""FastAPI integration: query-parameter dependency, request ids and error handlers."""

import uuid

from fastapi import FastAPI, Query

from beanie_paginate.core.exceptions import PaginationError, pagination_exception_handler
from beanie_paginate.core.logging import bind_request_id
from beanie_paginate.options import PaginateOptions


def pagination_options(
    page: int | None = Query(None, ge=1),
    offset: int | None = Query(None, ge=0, description="Takes precedence over page"),
    limit: int | None = Query(None, ge=1),
    sort: str | None = Query(None, description='e.g. "-created_at title"'),
) -> PaginateOptions:
    """Dependency: only the supplied parameters are set, the rest fall back to defaults."""
    supplied = {"page": page, "offset": offset, "limit": limit, "sort": sort}
    return PaginateOptions.parse({k: v for k, v in supplied.items() if v is not None})


def add_request_id_middleware(app: FastAPI) -> None:
    """Tag each request with an id: ``request.state.request_id``, the log context and the response header."""

    @app.middleware("http")
    async def request_id_middleware(request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        bind_request_id(request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PaginationError, pagination_exception_handler)
