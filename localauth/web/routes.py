"""Web routes for server-rendered pages outside the auth flow."""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, Response

from localauth.web.session import get_auth_context
from localauth.web.templates import templates

router = APIRouter()


@router.get("/", response_class=HTMLResponse, name="index")
async def index(request: Request) -> Response:
    """Landing page showing who is logged in."""
    ctx = get_auth_context(request)
    ctx.data["login_url"] = request.app.url_path_for("login")
    ctx.data["logout_url"] = request.app.url_path_for("logout")
    ctx.data["register_url"] = request.app.url_path_for("register")
    return templates.TemplateResponse(
        request=request,
        name="index.html",
        context={"auth": ctx, "app_name": request.app.title},
    )
