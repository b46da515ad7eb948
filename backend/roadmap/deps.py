"""Service dependencies for FastAPI, resolved from application state."""
from typing import Annotated

from fastapi import Depends, Request

from roadmap.services.allocation_service import AllocationService
from roadmap.services.graph_store import GraphStore
from roadmap.services.repository import GraphRepository
from roadmap.services.views import ViewService


def get_store(request: Request) -> GraphStore:
    return request.app.state.store


def get_repository(request: Request) -> GraphRepository:
    return request.app.state.repository


def get_allocation_service(request: Request) -> AllocationService:
    return request.app.state.allocation_service


def get_view_service(request: Request) -> ViewService:
    return request.app.state.view_service


StoreDep = Annotated[GraphStore, Depends(get_store)]
RepositoryDep = Annotated[GraphRepository, Depends(get_repository)]
AllocationServiceDep = Annotated[AllocationService, Depends(get_allocation_service)]
ViewServiceDep = Annotated[ViewService, Depends(get_view_service)]
