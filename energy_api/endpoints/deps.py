"""Dependencias FastAPI: acceso a los recursos del ServiceContainer."""

from fastapi import Request

from ..advisory import AdvisoryService
from ..services import QueryService, WriteService
from ..wiring import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_query_service(request: Request) -> QueryService:
    return get_container(request).query_service


def get_write_service(request: Request) -> WriteService:
    return get_container(request).write_service


def get_advisory_service(request: Request) -> AdvisoryService:
    return get_container(request).advisory_service
