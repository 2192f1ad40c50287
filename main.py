import os
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Depends, Request, Response, UploadFile, File
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field
from pymongo.errors import PyMongoError

from config import Settings, load_settings
from database import DocumentStore, connect
from editor import EditorRegistry, EditorSession
from errors import AuthFailure, BioLinkError, Conflict, NotFound, RemoteFailure, ValidationFailure
from identity import IdentityProvider
from pages import render_view
from profile_store import fetch_page_document
from renderer import render
from router import Navigator
from schemas import Session, USERNAME_PATTERN
from storage import MOUNT_PATH, ObjectStorage
from themes import DEFAULT_REGISTRY

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
log = logging.getLogger("biolink")

ERROR_STATUS = (
    (NotFound, 404),
    (ValidationFailure, 422),
    (Conflict, 409),
    (AuthFailure, 401),
    (RemoteFailure, 502),
)

SIGNUP_CONFIRM_MESSAGE = "Signup successful! Please check your email to confirm."

# Models for requests

class SignupRequest(BaseModel):
    email: str
    password: str

class LoginRequest(BaseModel):
    email: str
    password: str

class VerifyRequest(BaseModel):
    email: str
    code: str

class OnboardingRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=30, pattern=USERNAME_PATTERN)
    display_name: str = ""

class ProfilePatch(BaseModel):
    display_name: Optional[str] = None
    bio: Optional[str] = None
    social_email: Optional[str] = None
    social_instagram: Optional[str] = None
    social_youtube: Optional[str] = None
    social_telegram: Optional[str] = None
    social_twitter: Optional[str] = None

class ThemeUpdate(BaseModel):
    theme_id: str

class ColorsUpdate(BaseModel):
    button_color: Optional[str] = None
    button_text_color: Optional[str] = None

class LinkUpdate(BaseModel):
    field: str
    value: Any = None


def status_for(exc: BioLinkError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(exc, cls):
            return status
    return 500


def create_app(settings: Optional[Settings] = None, database=None) -> FastAPI:
    settings = settings or load_settings()
    if database is None:
        database = connect(settings.database_url or "mongodb://localhost:27017", settings.database_name)
    store = DocumentStore(database)
    storage_dir = Path(settings.storage_dir)
    storage = ObjectStorage(storage_dir, settings.public_base_url)
    identity = IdentityProvider(
        store,
        require_confirmation=settings.require_email_confirmation,
        session_ttl=settings.session_ttl_seconds,
    )
    editors = EditorRegistry(store, storage, settings, DEFAULT_REGISTRY)
    identity.on_session_change(editors.on_session_change)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        storage_dir.mkdir(parents=True, exist_ok=True)
        try:
            store.ensure_indexes()
        except PyMongoError as e:
            log.warning("Could not create indexes: %s", str(e)[:80])
        yield
        await editors.close_all()

    app = FastAPI(title="Bio.Link Page Builder", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.storage = storage
    app.state.identity = identity
    app.state.editors = editors

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BioLinkError)
    async def biolink_error(request: Request, exc: BioLinkError):
        return JSONResponse(status_code=status_for(exc), content={"detail": exc.message})

    # Helpers

    async def current_session(request: Request) -> Optional[Session]:
        return await identity.get_session(request.cookies.get(settings.session_cookie))

    async def require_session(session: Optional[Session] = Depends(current_session)) -> Session:
        if session is None:
            raise HTTPException(status_code=401, detail="Not signed in")
        return session

    async def require_editor(session: Session = Depends(require_session)) -> EditorSession:
        editor = editors.get(session)
        await editor.ensure_loaded()
        return editor

    def signed_in(response: Response, session: Session):
        response.set_cookie(settings.session_cookie, session.access_token, httponly=True, samesite="lax")

    # Health
    @app.get("/test")
    def test_database():
        status = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": "❌ Not Set" if not os.getenv("DATABASE_URL") else "✅ Set",
            "database_name": "❌ Not Set" if not os.getenv("DATABASE_NAME") else "✅ Set",
            "collections": []
        }
        try:
            cols = store.collection_names()
            status["database"] = "✅ Connected"
            status["collections"] = cols
        except Exception as e:
            status["database"] = f"❌ Error: {str(e)[:80]}"
        return status

    @app.get("/api/themes")
    def list_themes():
        return [{"id": t.id, "name": t.name, "layout": t.layout} for t in DEFAULT_REGISTRY]

    # Auth

    @app.post("/auth/signup")
    async def signup(payload: SignupRequest, response: Response):
        result = await identity.sign_up(payload.email, payload.password)
        if result.confirmation_required:
            return {"confirmation_required": True, "message": SIGNUP_CONFIRM_MESSAGE}
        signed_in(response, result.session)
        return {"id": result.user_id, "redirect": await editors.get(result.session).check_profile()}

    @app.post("/auth/login")
    async def login(payload: LoginRequest, response: Response):
        session = await identity.sign_in(payload.email, payload.password)
        signed_in(response, session)
        return {"id": session.user_id, "redirect": await editors.get(session).check_profile()}

    @app.post("/auth/verify")
    async def verify(payload: VerifyRequest, response: Response):
        session = await identity.verify_one_time_code(payload.email, payload.code)
        signed_in(response, session)
        return {"id": session.user_id, "redirect": await editors.get(session).check_profile()}

    @app.post("/auth/logout")
    async def logout(request: Request, response: Response):
        token = request.cookies.get(settings.session_cookie)
        if token:
            await identity.sign_out(token)
            await editors.settle()
        response.delete_cookie(settings.session_cookie)
        return {"redirect": "/"}

    @app.post("/onboarding")
    async def onboarding(payload: OnboardingRequest, session: Session = Depends(require_session)):
        editor = editors.get(session)
        redirect = await editor.onboard(payload.username, payload.display_name)
        return {"redirect": redirect, "profile": editor.profile.model_dump()}

    # Editor

    @app.get("/api/dashboard")
    async def dashboard(editor: EditorSession = Depends(require_editor)):
        return editor.snapshot()

    @app.patch("/api/profile")
    async def update_profile(payload: ProfilePatch, editor: EditorSession = Depends(require_editor)):
        profile = editor.profiles.apply_patch(payload.model_dump(exclude_unset=True))
        return profile.model_dump()

    @app.put("/api/profile/theme")
    async def set_theme(payload: ThemeUpdate, editor: EditorSession = Depends(require_editor)):
        if payload.theme_id not in DEFAULT_REGISTRY:
            raise HTTPException(status_code=422, detail="Unknown theme")
        profile = await editor.profiles.set_theme(payload.theme_id)
        return profile.model_dump()

    @app.put("/api/profile/colors")
    async def set_colors(payload: ColorsUpdate, editor: EditorSession = Depends(require_editor)):
        profile = await editor.profiles.set_button_colors(payload.button_color, payload.button_text_color)
        return profile.model_dump()

    @app.delete("/api/profile/colors/{kind}")
    async def reset_color(kind: str, editor: EditorSession = Depends(require_editor)):
        profile = await editor.profiles.reset_button_color(kind)
        return profile.model_dump()

    @app.post("/api/profile/avatar")
    async def upload_avatar(file: UploadFile = File(...), editor: EditorSession = Depends(require_editor)):
        profile = await editor.profiles.upload_avatar(await file.read(), file.filename or "")
        return {"avatar_url": profile.avatar_url}

    @app.post("/api/links")
    async def add_link(editor: EditorSession = Depends(require_editor)):
        link = await editor.links.add()
        return link.model_dump()

    @app.patch("/api/links/{link_id}")
    async def update_link(link_id: str, payload: LinkUpdate, editor: EditorSession = Depends(require_editor)):
        link = await editor.links.update_field(link_id, payload.field, payload.value)
        return link.model_dump()

    @app.delete("/api/links/{link_id}")
    async def delete_link(link_id: str, confirm: bool = False, editor: EditorSession = Depends(require_editor)):
        return {"deleted": await editor.links.remove(link_id, confirmed=confirm)}

    @app.post("/api/links/{link_id}/image")
    async def upload_link_image(link_id: str, file: UploadFile = File(...), editor: EditorSession = Depends(require_editor)):
        link = await editor.links.upload_image(link_id, await file.read(), file.filename or "")
        return link.model_dump()

    @app.get("/api/preview", response_class=HTMLResponse)
    async def preview(editor: EditorSession = Depends(require_editor)):
        return HTMLResponse(editor.preview_html)

    @app.get("/api/notifications")
    async def notifications(session: Session = Depends(require_session)):
        return [n.model_dump() for n in editors.get(session).notifier.active()]

    app.mount(MOUNT_PATH, StaticFiles(directory=str(storage_dir), check_dir=False), name="storage")

    # Pages (registered last: the catch-all also serves /<username>)

    @app.get("/", response_class=HTMLResponse)
    @app.get("/{path:path}", response_class=HTMLResponse)
    async def page(request: Request, path: str = ""):
        path = "/" + path
        session = await current_session(request)
        editor = editors.get(session) if session is not None else None
        navigator = editor.navigator() if editor is not None else Navigator(lambda: None)
        res = await navigator.navigate(path)
        if navigator.current_path != path:
            return RedirectResponse(navigator.current_path, status_code=303)

        if res.is_public:
            found = await fetch_page_document(store, res.username)
            if found is None:
                return HTMLResponse(render_view("not_found", title="Not found"), status_code=404)
            profile, links = found
            return HTMLResponse(render(profile, links, DEFAULT_REGISTRY))

        if res.view == "auth":
            action = "/auth/signup" if path == "/signup" else "/auth/login"
            body = render_view("auth", title=res.title, heading=res.title, submit_label=res.submit_label, action=action)
        elif res.view == "dashboard":
            body = render_view("dashboard", profile=editor.profile, links=editor.links.links, preview=editor.preview_html)
        else:
            body = render_view(res.view)
        return HTMLResponse(body)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
