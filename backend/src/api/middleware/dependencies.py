"""Dependency providers resolving services from the application's container."""

from __future__ import annotations

from fastapi import Request

from ...services.assistant import AssistantService
from ...services.container import ServiceContainer
from ...services.graph import GraphService
from ...services.retrieval import RetrievalService


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_retrieval_service(request: Request) -> RetrievalService:
    return get_container(request).retrieval


def get_graph_service(request: Request) -> GraphService:
    return get_container(request).graph


def get_assistant_service(request: Request) -> AssistantService:
    return get_container(request).assistant


__all__ = [
    "get_container",
    "get_retrieval_service",
    "get_graph_service",
    "get_assistant_service",
]
