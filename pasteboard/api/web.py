import logging
import secrets
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from pasteboard.api.auth import SESSION_KEY, AuthService, get_auth_service, get_cookie_token
from pasteboard.api.errors import AuthError, PasteboardError, StorageError
from pasteboard.api.notes import NotesService
from pasteboard.api.routes import get_notes_service

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

router = APIRouter(default_response_class=HTMLResponse)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


def _current_owner(request: Request, auth: AuthService) -> Optional[int]:
    try:
        return auth.require_session(get_cookie_token(request))
    except AuthError:
        return None


def _session_token(request: Request) -> str:
    """Token of the browser's cookie session, or a fresh one for a first login."""
    return get_cookie_token(request) or secrets.token_urlsafe(32)


def _remember_token(request: Request, token: str) -> None:
    """Store the token in the cookie session once the login has succeeded."""
    request.session[SESSION_KEY] = token


def _render_form(request: Request, page: str, title: str, error: Optional[str] = None):
    return templates.TemplateResponse(
        request,
        f"{page}.html",
        {"error": error, "title": f"{title} - Pasteboard"},
    )


# PUBLIC_INTERFACE
@router.get("/", summary="Home page")
def home(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    notes: NotesService = Depends(get_notes_service),
):
    """
    Show the logged-in account's notes and the session id for API use.

    Redirects to /login without a valid session.
    """
    owner_id = _current_owner(request, auth)
    if owner_id is None:
        return _redirect("/login")
    try:
        account = auth.get_account(owner_id)
        owned = notes.list(owner_id)
    except PasteboardError:
        return PlainTextResponse("Database error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return templates.TemplateResponse(
        request,
        "home.html",
        {
            "email": account.email,
            "notes": owned,
            "session_id": get_cookie_token(request),
            "title": "Home - Pasteboard",
        },
    )


# PUBLIC_INTERFACE
@router.get("/login", summary="Login page")
def login_page(request: Request, auth: AuthService = Depends(get_auth_service)):
    if _current_owner(request, auth) is not None:
        return _redirect("/")
    return _render_form(request, "login", "Login")


# PUBLIC_INTERFACE
@router.post("/login", summary="Log in")
def login(
    request: Request,
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Form fields:
        email, password

    Redirects to / on success; otherwise re-renders the form with the error.
    """
    token = _session_token(request)
    try:
        auth.login(email, password, token)
    except PasteboardError as exc:
        return _render_form(request, "login", "Login", exc.message)
    _remember_token(request, token)
    return _redirect("/")


# PUBLIC_INTERFACE
@router.get("/register", summary="Registration page")
def register_page(request: Request, auth: AuthService = Depends(get_auth_service)):
    if _current_owner(request, auth) is not None:
        return _redirect("/")
    return _render_form(request, "register", "Register")


# PUBLIC_INTERFACE
@router.post("/register", summary="Register and log in")
def register(
    request: Request,
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    confirmPassword: Optional[str] = Form(None),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Form fields:
        email, password, confirmPassword

    Creates the account, logs it in and redirects to /. Validation and
    duplicate-email errors re-render the form.
    """
    token = _session_token(request)
    try:
        auth.register(email, password, confirmPassword, token)
    except PasteboardError as exc:
        return _render_form(request, "register", "Register", exc.message)
    _remember_token(request, token)
    return _redirect("/")


# PUBLIC_INTERFACE
@router.post("/logout", summary="Log out")
def logout(request: Request, auth: AuthService = Depends(get_auth_service)):
    """
    Delete the session row, clear the cookie session and go to /login.

    If the row cannot be deleted the cookie session is kept and a 500 is
    returned, since the token would otherwise stay valid for the API.
    """
    token = get_cookie_token(request)
    try:
        auth.logout(token)
    except StorageError:
        logger.error("Logout failed; session row was not deleted")
        return PlainTextResponse("Database error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    request.session.clear()
    return _redirect("/login")
