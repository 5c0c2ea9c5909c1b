"""
Warden API - Route Index Page
===============================

What:  GET {API_PREFIX} (with or without a trailing slash) returns a small
       HTML page listing every endpoint, whether it needs a token, and
       whether it needs the admin role.
"""

from html import escape
from typing import List, NamedTuple

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from app import __version__

router = APIRouter(tags=["Docs"])


class RouteDoc(NamedTuple):
    method: str
    path: str
    description: str
    auth: bool
    admin: bool


ROUTES: List[RouteDoc] = [
    RouteDoc("GET", "", "API documentation", False, False),
    RouteDoc("POST", "/users", "Create a new user", False, False),
    RouteDoc("POST", "/users/login", "User login", False, False),
    RouteDoc("GET", "/users/profile", "Get user profile", True, False),
    RouteDoc("PUT", "/users/profile", "Update user profile", True, False),
    RouteDoc("GET", "/users", "Get all users", True, True),
    RouteDoc("GET", "/users/{id}", "Get user by ID", True, True),
]


def render_index(prefix: str, routes: List[RouteDoc]) -> str:
    rows = "\n".join(
        "<tr><td>{method}</td><td><code>{path}</code></td><td>{desc}</td>"
        "<td>{auth}</td><td>{admin}</td></tr>".format(
            method=escape(r.method),
            path=escape(prefix + r.path),
            desc=escape(r.description),
            auth="yes" if r.auth else "no",
            admin="yes" if r.admin else "no",
        )
        for r in routes
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>Warden API</title></head>
<body>
<h1>Warden API <small>v{escape(__version__)}</small></h1>
<p>Protected routes expect <code>Authorization: Bearer &lt;token&gt;</code>.
Interactive docs: <a href="/docs">/docs</a></p>
<table>
<thead><tr><th>Method</th><th>Path</th><th>Description</th><th>Auth</th><th>Admin</th></tr></thead>
<tbody>
{rows}
</tbody>
</table>
</body>
</html>"""


@router.get("", response_class=HTMLResponse, summary="Route index", include_in_schema=False)
@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def api_index(request: Request) -> HTMLResponse:
    prefix = request.app.state.settings.api_prefix
    return HTMLResponse(render_index(prefix, ROUTES))
