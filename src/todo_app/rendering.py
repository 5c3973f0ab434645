"""
Server-driven page rendering.

The service hands plain data (the Todo collection) or a redirect request to a
RenderBoundary; the boundary decides how that reaches the client. The bundled
implementation speaks the Inertia page protocol: a JSON page object for
client-side visits, an HTML shell carrying the same object for first loads.
"""
from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Sequence

from fastapi import Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from .models import TodoEntity
from .schemas import PageObject, TodoOut
from .settings import Settings

LISTING_COMPONENT = "Home"
LISTING_ROUTE = "todos.index"

# Root view for first loads; the client app mounts on #app and reads data-page
TEMPLATES = Jinja2Templates(directory=os.path.join(os.path.dirname(__file__), "templates"))
ROOT_TEMPLATE = "app.html"


# PUBLIC_INTERFACE
class RenderBoundary(ABC):
    """Contract between TodoService and whatever produces the response."""

    @abstractmethod
    def render_listing(self, todos: Sequence[TodoEntity]) -> Any:
        """Produce the listing response carrying the full Todo collection."""

    @abstractmethod
    def redirect_to_listing(self) -> Any:
        """Produce the response sent after a successful mutation."""


# PUBLIC_INTERFACE
class InertiaRenderer(RenderBoundary):
    """
    RenderBoundary bound to one request.

    - Requests with ``X-Inertia: true`` get the page object as JSON.
    - Other requests get the root template with the page object in ``data-page``.
    - A GET page visit whose ``X-Inertia-Version`` differs from the configured
      asset version gets 409 with ``X-Inertia-Location`` so the client reloads.
    - Redirects use 303 so the browser follows up with a GET after PUT/PATCH/DELETE.
    """

    def __init__(self, request: Request, settings: Settings) -> None:
        self._request = request
        self._settings = settings

    @property
    def is_page_visit(self) -> bool:
        return self._request.headers.get("X-Inertia", "").lower() == "true"

    def _url(self) -> str:
        url = self._request.url
        return f"{url.path}?{url.query}" if url.query else url.path

    def _version_stale(self) -> bool:
        if self._request.method != "GET" or not self.is_page_visit:
            return False
        return self._request.headers.get("X-Inertia-Version", "") != self._settings.asset_version

    def render(
        self,
        component: str,
        props: Dict[str, Any],
        status_code: int = status.HTTP_200_OK,
        url: Optional[str] = None,
    ) -> Response:
        """Render an arbitrary page component with the given props."""
        if self._version_stale():
            return Response(
                status_code=status.HTTP_409_CONFLICT,
                headers={"X-Inertia-Location": str(self._request.url)},
            )

        page = PageObject(
            component=component,
            props=props,
            url=url or self._url(),
            version=self._settings.asset_version,
        ).model_dump(mode="json")

        if self.is_page_visit:
            return JSONResponse(
                content=page,
                status_code=status_code,
                headers={"X-Inertia": "true", "Vary": "X-Inertia"},
            )

        return TEMPLATES.TemplateResponse(
            self._request,
            ROOT_TEMPLATE,
            {"page": page, "title": self._settings.app_title},
            status_code=status_code,
            headers={"Vary": "X-Inertia"},
        )

    def render_listing(
        self,
        todos: Sequence[TodoEntity],
        errors: Optional[Mapping[str, str]] = None,
    ) -> Response:
        """
        Render the Home page. With ``errors`` the page is answered as 422 at the
        listing URL, so the client shows the messages next to the form fields.
        """
        props = {
            "todos": [TodoOut(**t).model_dump(mode="json") for t in todos],
            "errors": dict(errors or {}),
        }
        if errors:
            return self.render(
                LISTING_COMPONENT,
                props,
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                url=self._request.url_for(LISTING_ROUTE).path,
            )
        return self.render(LISTING_COMPONENT, props)

    def redirect_to_listing(self) -> RedirectResponse:
        return RedirectResponse(
            url=str(self._request.url_for(LISTING_ROUTE)),
            status_code=status.HTTP_303_SEE_OTHER,
        )
