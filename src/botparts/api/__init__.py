"""REST API for the component cost tracker."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.responses import JSONResponse

from botparts.api.schemas import (
    BuildListResponse,
    BuildResponse,
    BuildSummaryResponse,
    ComponentPayload,
    ComponentResponse,
    CreateBuildRequest,
)
from botparts.config import Settings, load_settings
from botparts.errors import BotPartsError, NotFoundError, ValidationError
from botparts.identity import Identity
from botparts.ledger import (
    ComponentDraft,
    add_component,
    format_cost,
    remove_component,
    total_cost,
    update_component,
)
from botparts.models import Build, BuildSnapshot, Component
from botparts.repository import BuildRepository
from botparts.selection import resolve_active_build
from botparts.store import DocumentStore, open_store


logger = logging.getLogger("uvicorn.error")


def _component_to_response(component: Component, currency: str) -> ComponentResponse:
    return ComponentResponse(
        id=component.id,
        name=component.name,
        quantity=component.quantity,
        price=component.price,
        price_display=format_cost(component.price, currency),
        line_total=total_cost([component]),
    )


def build_to_response(build: Build, currency: str) -> BuildResponse:
    total = total_cost(build.components)
    return BuildResponse(
        id=build.id,
        name=build.name,
        is_default=build.is_default,
        created_at=build.created_at,
        components=[_component_to_response(component, currency) for component in build.components],
        total_cost=total,
        total_display=format_cost(total, currency),
    )


def build_to_summary(build: Build, currency: str) -> BuildSummaryResponse:
    total = total_cost(build.components)
    return BuildSummaryResponse(
        id=build.id,
        name=build.name,
        is_default=build.is_default,
        created_at=build.created_at,
        component_count=len(build.components),
        total_cost=total,
        total_display=format_cost(total, currency),
    )


def _draft_from_payload(payload: ComponentPayload, component_id: Optional[str] = None) -> ComponentDraft:
    return ComponentDraft(
        name=payload.name,
        quantity=payload.quantity,
        price=payload.price,
        id=component_id,
    )


async def current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    identity = Identity(user_id=x_user_id, ready=bool(x_user_id))
    return identity.require_user_id()


def create_app(settings: Optional[Settings] = None, store: Optional[DocumentStore] = None) -> FastAPI:
    settings = settings or load_settings()
    owns_store = store is None
    store = store or open_store(settings)
    repository = BuildRepository(
        store,
        app_id=settings.app_id,
        default_build_name=settings.default_build_name,
    )
    currency = settings.currency_symbol

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        if owns_store:
            await store.close()

    app = FastAPI(title="botparts API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.repository = repository

    @app.exception_handler(BotPartsError)
    async def handle_domain_error(request: Request, exc: BotPartsError) -> JSONResponse:
        content: dict[str, Any] = {"detail": exc.message}
        if isinstance(exc, ValidationError):
            content["fields"] = exc.fields
        if exc.status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    async def load_snapshot(user_id: str) -> BuildSnapshot:
        snapshot = await repository.list_builds(user_id)
        if snapshot.is_empty() and not snapshot.rejected:
            await repository.ensure_default_build(user_id)
            snapshot = await repository.list_builds(user_id)
        return snapshot

    @app.get("/builds", response_model=BuildListResponse)
    async def list_builds(selected: Optional[str] = None, user_id: str = Depends(current_user)):
        snapshot = await load_snapshot(user_id)
        return BuildListResponse(
            builds=[build_to_summary(build, currency) for build in snapshot.builds],
            active_build_id=resolve_active_build(selected, snapshot),
            rejected=snapshot.rejected,
        )

    @app.post("/builds", response_model=BuildResponse, status_code=status.HTTP_201_CREATED)
    async def create_build(body: CreateBuildRequest, user_id: str = Depends(current_user)):
        await load_snapshot(user_id)
        build = await repository.create_build(user_id, body.name)
        return build_to_response(build, currency)

    @app.get("/builds/{build_id}", response_model=BuildResponse)
    async def get_build(build_id: str, user_id: str = Depends(current_user)):
        build = await repository.get_build(user_id, build_id)
        return build_to_response(build, currency)

    @app.post(
        "/builds/{build_id}/components",
        response_model=BuildResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_component(
        build_id: str,
        body: ComponentPayload,
        user_id: str = Depends(current_user),
    ):
        build = await repository.get_build(user_id, build_id)
        components = add_component(build.components, _draft_from_payload(body))
        await repository.replace_components(user_id, build_id, components)
        return build_to_response(build.model_copy(update={"components": components}), currency)

    @app.put("/builds/{build_id}/components/{component_id}", response_model=BuildResponse)
    async def edit_component(
        build_id: str,
        component_id: str,
        body: ComponentPayload,
        user_id: str = Depends(current_user),
    ):
        build = await repository.get_build(user_id, build_id)
        components = update_component(build.components, _draft_from_payload(body, component_id))
        await repository.replace_components(user_id, build_id, components)
        return build_to_response(build.model_copy(update={"components": components}), currency)

    @app.delete("/builds/{build_id}/components/{component_id}", response_model=BuildResponse)
    async def delete_component(build_id: str, component_id: str, user_id: str = Depends(current_user)):
        build = await repository.get_build(user_id, build_id)
        components = remove_component(build.components, component_id)
        if len(components) == len(build.components):
            raise NotFoundError(f"Component {component_id!r} not found")
        await repository.replace_components(user_id, build_id, components)
        return build_to_response(build.model_copy(update={"components": components}), currency)

    return app
