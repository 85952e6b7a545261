from __future__ import annotations

from typing import Optional

import strawberry
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from strawberry.fastapi import GraphQLRouter

from .api.rest import router as rest_router
from .clock import Clock
from .container import build_container
from .domain import EntityLookup, EntityQuery, UnifiedOrderEntity
from .errors import (
    InvalidTransitionError,
    LookupNotFoundError,
    NotFoundError,
    StaleWriteError,
    TransportError,
    ValidationError,
)
from .lifecycle import available_actions, whose_turn
from .logging import setup_logging
from .observability import configure_observability
from .services import OrderFeedService
from .settings import Settings, load_settings
from .statuses import SourceKind
from .transport import OrderTransport


@strawberry.type
class GraphQLOrder:
    id: str
    display_number: str
    source_kind: str
    customer_name: str
    status: str
    status_label: str
    currency: str
    total_amount: float
    quoted_total: Optional[float]
    turn: str
    actions: list[str]
    created_at: str
    updated_at: str


def to_graphql_order(entity: UnifiedOrderEntity) -> GraphQLOrder:
    return GraphQLOrder(
        id=entity.id,
        display_number=entity.display_number,
        source_kind=entity.source_kind.value,
        customer_name=entity.customer_name,
        status=entity.status,
        status_label=entity.status_label,
        currency=entity.currency,
        total_amount=entity.total_amount,
        quoted_total=entity.quoted_total,
        turn=whose_turn(entity.source_kind, entity.status).value,
        actions=[action.value for action in available_actions(entity)],
        created_at=entity.created_at.isoformat(),
        updated_at=entity.updated_at.isoformat(),
    )


def graphql_schema() -> strawberry.Schema:
    @strawberry.type
    class Query:
        @strawberry.field
        async def order(self, info: strawberry.Info, ref: str) -> Optional[GraphQLOrder]:
            service: OrderFeedService = info.context["container"].feed_service
            try:
                entity = await service.get_entity(EntityLookup(ref=ref))
            except NotFoundError:
                return None
            return to_graphql_order(entity)

        @strawberry.field
        async def orders(
            self, info: strawberry.Info, status: Optional[str] = None, kind: Optional[str] = None
        ) -> list[GraphQLOrder]:
            service: OrderFeedService = info.context["container"].feed_service
            try:
                kind_value = SourceKind(kind) if kind else None
            except ValueError:
                kind_value = None
            entities = await service.query(EntityQuery(status=status, kind=kind_value))
            return [to_graphql_order(entity) for entity in entities]

    return strawberry.Schema(query=Query)


def create_app(
    settings: Settings,
    transport: Optional[OrderTransport] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    setup_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        description="Unified order and quotation feed with the admin negotiation workflow.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    container = build_container(settings, transport=transport, clock=clock)
    app.state.container = container

    configure_observability(app, settings)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await container.transport.close()

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_, __):
        return JSONResponse(status_code=404, content={"detail": "Not found"})

    @app.exception_handler(ValidationError)
    async def handle_validation(_, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": exc.detail})

    @app.exception_handler(InvalidTransitionError)
    async def handle_invalid_transition(_, exc: InvalidTransitionError):
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "action": exc.action, "status": exc.status},
        )

    @app.exception_handler(StaleWriteError)
    async def handle_stale_write(_, exc: StaleWriteError):
        return JSONResponse(
            status_code=409,
            content={"detail": "Record changed on the backend; reload and retry", "action": exc.action},
        )

    @app.exception_handler(LookupNotFoundError)
    async def handle_lookup_not_found(_, exc: LookupNotFoundError):
        return JSONResponse(status_code=502, content={"detail": str(exc), "action": exc.action})

    @app.exception_handler(TransportError)
    async def handle_transport(_, exc: TransportError):
        return JSONResponse(
            status_code=502,
            content={"detail": exc.detail, "action": exc.action, "backend_status": exc.status_code},
        )

    async def graphql_context(request: Request):
        return {"container": request.app.state.container}

    schema = graphql_schema()
    app.include_router(GraphQLRouter(schema, context_getter=graphql_context), prefix="/graphql")

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get(settings.request_id_header, "") or container.id_provider.new_id()
        response = await call_next(request)
        response.headers[settings.request_id_header] = request_id
        return response

    app.include_router(rest_router)
    app.include_router(rest_router, prefix="/v1")

    return app


app = create_app(load_settings())
