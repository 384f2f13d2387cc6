from fastapi import Request

from ...managers.session import SessionRegistry
from ...storage import SQLDocumentStore


def get_store(request: Request) -> SQLDocumentStore:
    return request.app.state.store


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions
