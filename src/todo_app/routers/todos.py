from __future__ import annotations

import logging
from typing import Callable, List, NamedTuple

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from ..models import TodoEntity
from ..rendering import InertiaRenderer
from ..repositories import RecordStore, get_record_store
from ..schemas import BatchRequest, TodoIn
from ..service import TodoService
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)


def _get_store(store: RecordStore = Depends(get_record_store)) -> RecordStore:
    """
    Dependency wrapper for the record store to keep signatures clean.
    """
    return store


# PUBLIC_INTERFACE
def get_todo_service(
    request: Request,
    store: RecordStore = Depends(_get_store),
    settings: Settings = Depends(get_settings),
) -> TodoService:
    """Build a TodoService whose responses are rendered for this request."""
    return TodoService(store, InertiaRenderer(request, settings))


# PUBLIC_INTERFACE
def store_for_request(request: Request) -> RecordStore:
    """
    Return the record store outside dependency injection (e.g. in exception
    handlers), honouring any override installed on the app.
    """
    provider = request.app.dependency_overrides.get(get_record_store, get_record_store)
    return provider()


def _resolve_todo(todo_id: int, store: RecordStore = Depends(_get_store)) -> TodoEntity:
    """
    Look up the todo named in the path; 404 before the service runs if it is absent.
    """
    item = store.get(todo_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    return item


def list_todos(service: TodoService = Depends(get_todo_service)) -> Response:
    """
    Render the Home page with every todo.
    """
    return service.list()


def create_todo(payload: TodoIn, service: TodoService = Depends(get_todo_service)) -> Response:
    """
    Create a todo, then redirect to the listing.
    """
    response = service.create(payload.title)
    logger.info("Todo created: title='%s'", payload.title)
    return response


def update_todo(
    payload: TodoIn,
    todo: TodoEntity = Depends(_resolve_todo),
    service: TodoService = Depends(get_todo_service),
) -> Response:
    """
    Replace the title of an existing todo, then redirect to the listing.
    """
    response = service.update(todo["id"], payload.title)
    logger.info("Todo updated: id=%d, title='%s'", todo["id"], payload.title)
    return response


def delete_todo(
    todo: TodoEntity = Depends(_resolve_todo),
    service: TodoService = Depends(get_todo_service),
) -> Response:
    """
    Delete an existing todo, then redirect to the listing.
    """
    response = service.delete(todo["id"])
    logger.info("Todo deleted: id=%d", todo["id"])
    return response


def batch_update_delete(payload: BatchRequest, service: TodoService = Depends(get_todo_service)) -> Response:
    """
    Apply all title updates, then delete all listed ids, then redirect to the listing.
    """
    updates = [(item.id, item.title) for item in payload.updates or []]
    deletes = payload.deletes or []
    response = service.batch_apply(updates, deletes)
    logger.info("Todo batch applied: updates=%d, deletes=%d", len(updates), len(deletes))
    return response


class RouteSpec(NamedTuple):
    methods: List[str]
    path: str
    name: str
    endpoint: Callable[..., Response]
    summary: str


# Dispatch table: (verbs, path) -> operation. The batch route precedes the
# {todo_id} routes so its literal path is matched first.
ROUTES: List[RouteSpec] = [
    RouteSpec(["GET"], "/todos", "todos.index", list_todos, "List Todos"),
    RouteSpec(["POST"], "/todos", "todos.store", create_todo, "Create Todo"),
    RouteSpec(
        ["POST"], "/todos/batch-update-delete", "todos.batchUpdateDelete", batch_update_delete,
        "Batch Update/Delete Todos",
    ),
    RouteSpec(["PUT", "PATCH"], "/todos/{todo_id}", "todos.update", update_todo, "Update Todo"),
    RouteSpec(["DELETE"], "/todos/{todo_id}", "todos.destroy", delete_todo, "Delete Todo"),
]


# PUBLIC_INTERFACE
def build_router(routes: List[RouteSpec] = ROUTES) -> APIRouter:
    """
    Build the todos router from the dispatch table.

    Every mutation answers 303 to the listing; the listing answers with the
    rendered page (HTML shell or JSON page object).
    """
    router = APIRouter(tags=["todos"])
    for spec in routes:
        router.add_api_route(
            spec.path,
            spec.endpoint,
            methods=spec.methods,
            name=spec.name,
            summary=spec.summary,
            response_model=None,
            responses={404: {"description": "Todo not found"}} if "{todo_id}" in spec.path else None,
        )
    return router
