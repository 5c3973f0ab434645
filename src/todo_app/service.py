from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence, Tuple

from .rendering import RenderBoundary
from .repositories import RecordStore

# (id, title)
TitleUpdate = Tuple[int, str]


# PUBLIC_INTERFACE
class TodoService:
    """
    Translates todo commands into record store calls and hands the outcome to
    the render boundary.

    Inputs are trusted: titles are validated and single ids resolved before
    any method here runs. Store errors propagate unchanged.
    """

    def __init__(self, store: RecordStore, renderer: RenderBoundary) -> None:
        self.store = store
        self.renderer = renderer

    def list(self) -> Any:
        return self.renderer.render_listing(self.store.list_all())

    def create(self, title: str) -> Any:
        self.store.insert(title)
        return self.renderer.redirect_to_listing()

    def update(self, todo_id: int, title: str) -> Any:
        self.store.update_by_id(todo_id, {"title": title})
        return self.renderer.redirect_to_listing()

    def delete(self, todo_id: int) -> Any:
        self.store.delete_by_id(todo_id)
        return self.renderer.redirect_to_listing()

    def batch_apply(
        self,
        updates: Optional[Sequence[TitleUpdate]] = None,
        deletes: Optional[Iterable[int]] = None,
    ) -> Any:
        """
        Apply title updates one by one, then delete the given ids in one call.

        Updates always run first, so an id present in both ends up deleted.
        Unknown ids are no-ops in both phases. The phases are not atomic: a
        store failure while deleting leaves the updates in place.
        """
        if updates:
            for todo_id, title in updates:
                self.store.update_by_id(todo_id, {"title": title})

        ids = set(deletes or ())
        if ids:
            self.store.delete_by_id_set(ids)

        return self.renderer.redirect_to_listing()
