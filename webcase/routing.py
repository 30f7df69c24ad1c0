"""
webcase - Named Route URL Generation.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional


class AppRouter:
    """
    Reverse named routes of a Starlette/FastAPI application.

    Unknown route names (or missing path parameters) raise
    :class:`starlette.routing.NoMatchFound` unchanged.

    Usage::

        router = AppRouter(app)
        router.generate("post_show", {"post_id": 3})             # "/posts/3"
        router.generate("post_show", {"post_id": 3}, True)       # "http://testserver/posts/3"
    """

    def __init__(self, app: Any, base_url: str = "http://testserver"):
        self._app = app
        self.base_url = base_url

    def generate(
        self,
        name: str,
        params: Optional[Mapping[str, Any]] = None,
        absolute: bool = False,
    ) -> str:
        path = self._app.url_path_for(name, **dict(params or {}))
        if absolute:
            return str(path.make_absolute_url(self.base_url))
        return str(path)

    def __repr__(self) -> str:
        return f"<AppRouter base_url={self.base_url!r}>"
