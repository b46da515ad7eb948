"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roadmap.config import get_settings
from roadmap.database import build_engine, build_session_factory, init_db
from roadmap.engine.calculator import CostCalculator
from roadmap.engine.ledger import AllocationLedger
from roadmap.routers import allocations, graph, members, milestones, teams
from roadmap.services.allocation_service import AllocationService
from roadmap.services.failure_tracker import NotFoundTracker
from roadmap.services.graph_store import GraphStore, SqlGraphStore
from roadmap.services.repository import GraphRepository
from roadmap.services.views import ViewService
from roadmap.services.write_queue import WriteCoalescer

settings = get_settings()

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)


def _wire(app: FastAPI, store: GraphStore) -> None:
    calculator = CostCalculator()
    tracker = NotFoundTracker(settings.not_found_threshold, settings.not_found_cooldown_seconds)
    repository = GraphRepository(store, tracker)
    coalescer = WriteCoalescer(settings.write_debounce_seconds) if settings.coalesce_writes else None
    app.state.store = store
    app.state.repository = repository
    app.state.allocation_service = AllocationService(repository, AllocationLedger(calculator), coalescer)
    app.state.view_service = ViewService(repository, calculator)


def create_app(store: GraphStore | None = None) -> FastAPI:
    """Build the app. Without ``store`` the lifespan connects to ``settings.database_url``."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if store is None:
            engine = build_engine(settings.database_url)
            await init_db(engine)
            _wire(app, SqlGraphStore(build_session_factory(engine), settings.json_text_fields_set))
        else:
            _wire(app, store)
        yield
        result = await app.state.allocation_service.flush()
        if result.errors:
            logger.error("Pending writes failed on shutdown: %s", result.errors)
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title="Roadmap Resource Allocation Engine",
        description="Team allocation, cost and bandwidth rollups for roadmap graphs",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(graph.router)
    app.include_router(allocations.router)
    app.include_router(teams.router)
    app.include_router(members.router)
    app.include_router(milestones.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
