"""ASGI application for Mealcart."""
# mypy: ignore-errors

from __future__ import annotations

import logging
from datetime import date
from time import perf_counter
from typing import Any, Optional
from uuid import uuid4

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError

from mealcart import __version__, metrics
from mealcart.config import Settings, get_settings
from mealcart.invalidation import SHOPPING_LIST_VIEWS, CacheInvalidator, notify
from mealcart.logging_utils import configure_logging as configure_app_logging
from mealcart.models.master_list import Category, MasterItemType, MasterListItem
from mealcart.models.shopping import (
    MasterItemSource,
    ShoppingList,
    ShoppingListItem,
    SyncResult,
)
from mealcart.server import deps
from mealcart.server.cache import ShoppingListViewCache
from mealcart.shopping.aggregate import format_shopping_list_as_text
from mealcart.weeks import monday_of, normalize_week_start

logger = logging.getLogger(__name__)

SYNC_FAILURE_DETAIL = "Failed to update shopping list"


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value.hex()
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _normalize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{key: _json_safe(value) for key, value in error.items()} for error in errors]


def _configure_logging(settings: Settings) -> None:
    secrets = [
        settings.api_token or "",
        settings.embedding_api_key or "",
        settings.llm_api_key or "",
    ]
    configure_app_logging(settings.log_level, settings.log_format, secrets)


def _resolve_week(week: Optional[date]) -> date:
    return normalize_week_start(week) if week is not None else monday_of(date.today())


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    _configure_logging(settings)

    application = FastAPI(title="Mealcart", version=__version__)

    view_cache = ShoppingListViewCache()
    invalidator = CacheInvalidator()
    invalidator.subscribe(view_cache.invalidate)
    application.state.view_cache = view_cache
    application.state.invalidator = invalidator
    logger.debug("Application created with log level %s", settings.log_level)

    if settings.log_requests:
        access_logger = logging.getLogger("mealcart.access")

        @application.middleware("http")
        async def log_request_response(request: Request, call_next):
            """Log request/response details without leaking sensitive data."""

            request_id = request.headers.get("X-Request-ID") or uuid4().hex
            request.state.request_id = request_id
            start = perf_counter()
            path = request.url.path
            method = request.method
            try:
                response: Response = await call_next(request)
            except Exception:
                duration_ms = (perf_counter() - start) * 1000
                access_logger.exception(
                    "HTTP %s %s status=500 duration_ms=%.2f",
                    method,
                    path,
                    duration_ms,
                    extra={"request_id": request_id},
                )
                metrics.REQUEST_COUNT.labels(method=method, path=path, status="500").inc()
                metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(
                    duration_ms / 1000.0
                )
                raise

            duration_ms = (perf_counter() - start) * 1000
            response.headers.setdefault("X-Request-ID", request_id)
            access_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                path,
                response.status_code,
                duration_ms,
                extra={"request_id": request_id},
            )
            try:
                metrics.REQUEST_COUNT.labels(
                    method=method,
                    path=path,
                    status=str(response.status_code),
                ).inc()
                metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(
                    duration_ms / 1000.0
                )
            except Exception:  # pragma: no cover - metrics best effort
                pass
            return response

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        body_preview: str | None = None
        try:
            raw_body = await request.body()
            if raw_body:
                decoded = raw_body.decode("utf-8", errors="replace")
                if len(decoded) > 2048:
                    decoded = decoded[:2048] + "...(truncated)"
                body_preview = decoded
        except Exception:  # pragma: no cover - defensive logging
            body_preview = "<unable to read body>"

        log_kwargs: dict[str, Any] = {}
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            log_kwargs["extra"] = {"request_id": request_id}

        logger.warning(
            "Validation error on %s %s: %s | body=%s",
            request.method,
            request.url.path,
            exc.errors(),
            body_preview,
            **log_kwargs,
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": _normalize_validation_errors(exc.errors())},
        )

    @application.get(
        "/shopping-list",
        response_model=ShoppingList,
        summary="Get the week's shopping list",
    )
    def shopping_list_get(
        week: Optional[date] = Query(default=None),
        cache: ShoppingListViewCache = Depends(deps.get_view_cache),
        ensurer: deps.ShoppingListEnsurer = Depends(deps.get_shopping_list_ensurer),
    ) -> ShoppingList:
        week_start = _resolve_week(week)
        cached = cache.get(week_start)
        if cached is not None:
            return cached
        generation = cache.generation
        shopping_list = ensurer(week_start)
        cache.put(week_start, shopping_list, generation)
        return shopping_list

    @application.post(
        "/shopping-list/sync",
        response_model=SyncResult,
        summary="Sync meal ingredients into the week's shopping list",
    )
    def shopping_list_sync(
        week: Optional[date] = Query(default=None),
        auth: None = Depends(deps.require_api_token),
        syncer: deps.MealIngredientSyncer = Depends(deps.get_meal_ingredient_syncer),
    ) -> SyncResult:
        week_start = _resolve_week(week)
        try:
            return syncer(week_start)
        except Exception as exc:
            logger.exception(
                "Meal ingredient sync failed week_start=%s",
                week_start,
                extra={"week_start": str(week_start)},
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=SYNC_FAILURE_DETAIL,
            ) from exc

    @application.get(
        "/shopping-list/export",
        response_class=PlainTextResponse,
        summary="Export unchecked items as text",
    )
    def shopping_list_export(
        week: Optional[date] = Query(default=None),
        cache: ShoppingListViewCache = Depends(deps.get_view_cache),
        ensurer: deps.ShoppingListEnsurer = Depends(deps.get_shopping_list_ensurer),
    ) -> PlainTextResponse:
        week_start = _resolve_week(week)
        shopping_list = cache.get(week_start) or ensurer(week_start)
        return PlainTextResponse(format_shopping_list_as_text(shopping_list.items))

    @application.post(
        "/shopping-list/{list_id}/items",
        response_model=ShoppingListItem,
        status_code=status.HTTP_201_CREATED,
        summary="Add a manual item",
    )
    def shopping_list_add_item(
        list_id: int,
        payload: ManualItemRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        adder: deps.ManualItemAdder = Depends(deps.get_manual_item_adder),
        invalidate=Depends(deps.get_invalidator),
    ) -> ShoppingListItem:
        try:
            item = adder(list_id, payload.name)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        notify(invalidate, SHOPPING_LIST_VIEWS)
        return item

    @application.put(
        "/shopping-list/items/{item_id}",
        response_model=ShoppingListItem,
        summary="Check or uncheck an item",
    )
    def shopping_list_toggle_item(
        item_id: int,
        payload: ToggleItemRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        toggler: deps.ItemToggler = Depends(deps.get_item_toggler),
        invalidate=Depends(deps.get_invalidator),
    ) -> ShoppingListItem:
        try:
            item = toggler(item_id, payload.checked)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        notify(invalidate, SHOPPING_LIST_VIEWS)
        return item

    @application.delete(
        "/shopping-list/items/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete an item",
    )
    def shopping_list_delete_item(
        item_id: int,
        auth: None = Depends(deps.require_api_token),
        deleter: deps.ItemDeleter = Depends(deps.get_item_deleter),
        invalidate=Depends(deps.get_invalidator),
    ) -> None:
        try:
            deleter(item_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        notify(invalidate, SHOPPING_LIST_VIEWS)

    @application.post(
        "/shopping-list/master-items/include",
        response_model=ShoppingListItem,
        summary="Add a staple or restock item to the week's list",
    )
    def shopping_list_include_master_item(
        payload: MasterItemRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        includer: deps.MasterItemIncluder = Depends(deps.get_master_item_includer),
        invalidate=Depends(deps.get_invalidator),
    ) -> ShoppingListItem:
        item = includer(_resolve_week(payload.week_start), payload.name, payload.source)
        notify(invalidate, SHOPPING_LIST_VIEWS)
        return item

    @application.post(
        "/shopping-list/master-items/exclude",
        summary="Remove a staple or restock item from the week's list",
    )
    def shopping_list_exclude_master_item(
        payload: MasterItemRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        excluder: deps.MasterItemExcluder = Depends(deps.get_master_item_excluder),
        invalidate=Depends(deps.get_invalidator),
    ) -> dict[str, int]:
        removed = excluder(_resolve_week(payload.week_start), payload.name, payload.source)
        notify(invalidate, SHOPPING_LIST_VIEWS)
        return {"removed": removed}

    @application.get(
        "/master-list/categories",
        response_model=list[Category],
        summary="List master list categories",
    )
    def master_list_categories(
        lister: deps.CategoryLister = Depends(deps.get_category_lister),
    ) -> list[Category]:
        return lister()

    @application.post(
        "/master-list/categories",
        response_model=Category,
        status_code=status.HTTP_201_CREATED,
        summary="Create a master list category",
    )
    def master_list_create_category(
        payload: CategoryRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        creator: deps.CategoryCreator = Depends(deps.get_category_creator),
        invalidate=Depends(deps.get_invalidator),
    ) -> Category:
        try:
            category = creator(payload.name)
        except IntegrityError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Category '{payload.name}' already exists",
            ) from exc
        notify(invalidate, SHOPPING_LIST_VIEWS)
        return category

    @application.get(
        "/master-list/items",
        response_model=list[MasterListItem],
        summary="List staple and restock items",
    )
    def master_list_items(
        item_type: Optional[MasterItemType] = Query(default=None, alias="type"),
        lister: deps.MasterItemLister = Depends(deps.get_master_item_lister),
    ) -> list[MasterListItem]:
        return lister(item_type)

    @application.post(
        "/master-list/items",
        response_model=MasterListItem,
        status_code=status.HTTP_201_CREATED,
        summary="Add a staple or restock item",
    )
    def master_list_create_item(
        payload: MasterListItemCreateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        creator: deps.MasterItemCreator = Depends(deps.get_master_item_creator),
        refresher: deps.MasterItemRefresher = Depends(deps.get_master_item_refresher),
        invalidate=Depends(deps.get_invalidator),
    ) -> MasterListItem:
        try:
            item = creator(payload.category_id, payload.name, payload.type)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        item = refresher(item.id) or item
        notify(invalidate, SHOPPING_LIST_VIEWS)
        return item

    @application.put(
        "/master-list/items/{item_id}",
        response_model=MasterListItem,
        summary="Rename a staple or restock item",
    )
    def master_list_rename_item(
        item_id: int,
        payload: MasterListItemRenameRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        renamer: deps.MasterItemRenamer = Depends(deps.get_master_item_renamer),
        refresher: deps.MasterItemRefresher = Depends(deps.get_master_item_refresher),
        invalidate=Depends(deps.get_invalidator),
    ) -> MasterListItem:
        try:
            item = renamer(item_id, payload.name)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        item = refresher(item.id) or item
        notify(invalidate, SHOPPING_LIST_VIEWS)
        return item

    @application.delete(
        "/master-list/items/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete a staple or restock item",
    )
    def master_list_delete_item(
        item_id: int,
        auth: None = Depends(deps.require_api_token),
        deleter: deps.MasterItemDeleter = Depends(deps.get_master_item_deleter),
        invalidate=Depends(deps.get_invalidator),
    ) -> None:
        try:
            deleter(item_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        notify(invalidate, SHOPPING_LIST_VIEWS)

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    return application


class ManualItemRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class ToggleItemRequest(BaseModel):
    checked: bool


class MasterItemRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    source: MasterItemSource
    week_start: Optional[date] = Field(default=None)


class CategoryRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)


class MasterListItemCreateRequest(BaseModel):
    category_id: int
    name: str = Field(min_length=1, max_length=255)
    type: MasterItemType


class MasterListItemRenameRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)


app = create_app()

__all__ = ["app", "create_app"]
