"""
main.py
The Application Entry Point.
FastAPI routes over the Secret Santa rules: accounts, gifts, the public wall,
comments, the guessing game and the leaderboard.
"""
import logging
import os
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Header, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from .admin import ADMIN_USERNAME, AdminService
from .auth import AuthService, SessionRegistry
from .blob_store import LocalBlobStore
from .clock import Clock, utcnow
from .comments import CommentStore
from .config import Settings, get_settings
from .database import build_engine, build_session_factory, get_db, init_db
from .directory import Directory
from .errors import AuthError, NotFoundError, SantaError
from .guessing import GuessingEngine
from .leaderboard import Leaderboard
from .lifecycle import can_delete
from .message_store import MessageStore
from .models import (
    AdminOpResult, AuthResponse, AvatarUpdateRequest, CommentOut, CommentRequest,
    CreateUserRequest, Direction, GameCard, GuessOutcome, GuessRequest, GuessResult,
    LeaderboardEntry, LoginRequest, MessageOut, PasswordUpdateRequest, RegisterRequest,
    SendMessageRequest, SentMessageOut, UploadResponse, UserOut, WallConfig,
)
from .policy import ConfigStore, can_view_wall, require

logger = logging.getLogger(__name__)


# --- Dependencies ---

def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_directory(db: AsyncSession = Depends(get_db)) -> Directory:
    return Directory(db)


def get_auth(request: Request, directory: Directory = Depends(get_directory)) -> AuthService:
    return AuthService(directory, request.app.state.sessions)


def get_messages(db: AsyncSession = Depends(get_db), directory: Directory = Depends(get_directory),
                 clock: Clock = Depends(get_clock)) -> MessageStore:
    return MessageStore(db, directory, clock)


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization:
        return None
    return authorization.removeprefix("Bearer ").strip()


async def get_current_user(token: Optional[str] = Depends(bearer_token),
                           auth: AuthService = Depends(get_auth)):
    user = await auth.current_session(token)
    if user is None:
        raise AuthError("Unauthorized")
    return user


def to_sent(message, user, now) -> SentMessageOut:
    out = SentMessageOut.model_validate(message)
    out.can_delete = can_delete(message, user, now)
    return out


# --- Application ---

def create_app(settings: Optional[Settings] = None, engine: Optional[AsyncEngine] = None,
               clock: Clock = utcnow) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title="Secret Santa")
    app.state.settings = settings
    app.state.engine = engine or build_engine(settings.database_url)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.sessions = SessionRegistry()
    app.state.clock = clock
    app.state.blobs = LocalBlobStore(settings.upload_dir, settings.upload_url_prefix, settings.max_upload_bytes)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount(settings.upload_url_prefix, StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

    @app.exception_handler(SantaError)
    async def santa_error_handler(request: Request, exc: SantaError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.on_event("startup")
    async def startup_event():
        """Create tables and make sure the main admin exists."""
        os.makedirs(settings.upload_dir, exist_ok=True)
        await init_db(app.state.engine)
        async with app.state.session_factory() as session:
            directory = Directory(session)
            if not await directory.exists(ADMIN_USERNAME):
                admin = AdminService(session, directory, app.state.sessions)
                await admin.reset_admin(settings.admin_default_password)

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.engine.dispose()

    @app.get("/")
    async def read_root():
        return {"name": "Secret Santa", "status": "ok"}

    # --- Accounts ---

    @app.post("/api/register", response_model=AuthResponse)
    async def register(payload: RegisterRequest, directory: Directory = Depends(get_directory),
                       auth: AuthService = Depends(get_auth)):
        """Registers a new user and signs them straight in."""
        profile = await directory.register(payload.username, payload.password, avatar=payload.avatar)
        token = await auth.sign_in(profile.username, payload.password)
        return AuthResponse(token=token, user=UserOut.model_validate(profile))

    @app.post("/api/login", response_model=AuthResponse)
    async def login(payload: LoginRequest, auth: AuthService = Depends(get_auth)):
        token = await auth.sign_in(payload.username, payload.password)
        user = await auth.current_session(token)
        return AuthResponse(token=token, user=UserOut.model_validate(user))

    @app.post("/api/logout")
    async def logout(token: Optional[str] = Depends(bearer_token), auth: AuthService = Depends(get_auth)):
        if token:
            auth.sign_out(token)
        return {"ok": True}

    @app.get("/api/me", response_model=UserOut)
    async def me(user=Depends(get_current_user)):
        return user

    @app.put("/api/me/password")
    async def update_password(payload: PasswordUpdateRequest, user=Depends(get_current_user),
                              auth: AuthService = Depends(get_auth)):
        return {"ok": await auth.update_own_password(user, payload.password)}

    @app.put("/api/me/avatar", response_model=UserOut)
    async def update_avatar(payload: AvatarUpdateRequest, user=Depends(get_current_user),
                            directory: Directory = Depends(get_directory)):
        return await directory.update_avatar(user.username, payload.avatar)

    @app.get("/api/users", response_model=List[UserOut])
    async def list_users(user=Depends(get_current_user), directory: Directory = Depends(get_directory)):
        return await directory.list()

    # --- Gifts ---

    @app.post("/api/uploads", response_model=UploadResponse)
    async def upload(file: UploadFile = File(...), user=Depends(get_current_user)):
        blobs: LocalBlobStore = app.state.blobs
        # Read one byte past the limit so oversize files are caught without buffering them whole
        data = await file.read(blobs.max_bytes + 1)
        url = await run_in_threadpool(blobs.upload, data, file.content_type or "")
        return UploadResponse(url=url)

    @app.post("/api/messages", response_model=List[SentMessageOut])
    async def send_message(payload: SendMessageRequest, user=Depends(get_current_user),
                           messages: MessageStore = Depends(get_messages)):
        created = await messages.send_many(user.username, payload.to, payload.body, payload.type)
        now = clock()
        return [to_sent(m, user, now) for m in created]

    @app.get("/api/messages/inbox", response_model=List[MessageOut])
    async def inbox(user=Depends(get_current_user), messages: MessageStore = Depends(get_messages)):
        return await messages.list_for(user.username, Direction.TO)

    @app.get("/api/messages/sent", response_model=List[SentMessageOut])
    async def sent(user=Depends(get_current_user), messages: MessageStore = Depends(get_messages)):
        now = clock()
        return [to_sent(m, user, now) for m in await messages.list_for(user.username, Direction.FROM)]

    @app.delete("/api/messages/{message_id}")
    async def delete_message(message_id: str, user=Depends(get_current_user),
                             messages: MessageStore = Depends(get_messages)):
        """Senders get five minutes to take a gift back; admins can always moderate."""
        message = await messages.get(message_id)
        if message is None:
            raise NotFoundError("Message not found")
        require(can_delete(message, user, clock()), "This gift can no longer be deleted")
        return {"ok": await messages.delete_by_id(message_id)}

    # --- Public wall ---

    @app.get("/api/wall/config", response_model=WallConfig)
    async def wall_config(user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
        return await ConfigStore(db).snapshot()

    @app.put("/api/wall/config", response_model=WallConfig)
    async def set_wall_config(payload: WallConfig, user=Depends(get_current_user),
                              db: AsyncSession = Depends(get_db)):
        return await ConfigStore(db).set_wall_enabled(user, payload.public_wall_enabled)

    @app.get("/api/wall", response_model=List[MessageOut])
    async def wall(user=Depends(get_current_user), db: AsyncSession = Depends(get_db),
                   messages: MessageStore = Depends(get_messages)):
        config = await ConfigStore(db).snapshot()
        require(can_view_wall(user, config), "The public wall is closed")
        return await messages.list_all()

    @app.get("/api/messages/{message_id}/comments", response_model=List[CommentOut])
    async def list_comments(message_id: str, user=Depends(get_current_user),
                            db: AsyncSession = Depends(get_db), messages: MessageStore = Depends(get_messages)):
        config = await ConfigStore(db).snapshot()
        require(can_view_wall(user, config), "The public wall is closed")
        return await CommentStore(db, messages, clock).list_for(message_id)

    @app.post("/api/messages/{message_id}/comments", response_model=CommentOut)
    async def add_comment(message_id: str, payload: CommentRequest, user=Depends(get_current_user),
                          db: AsyncSession = Depends(get_db), messages: MessageStore = Depends(get_messages)):
        config = await ConfigStore(db).snapshot()
        require(can_view_wall(user, config), "The public wall is closed")
        return await CommentStore(db, messages, clock).add(message_id, user, payload.body)

    @app.delete("/api/comments/{comment_id}")
    async def delete_comment(comment_id: str, user=Depends(get_current_user),
                             db: AsyncSession = Depends(get_db), messages: MessageStore = Depends(get_messages)):
        await CommentStore(db, messages, clock).delete(comment_id, user)
        return {"ok": True}

    # --- Guessing game ---

    @app.get("/api/game", response_model=List[GameCard])
    async def game_board(user=Depends(get_current_user), db: AsyncSession = Depends(get_db),
                         messages: MessageStore = Depends(get_messages)):
        return await GuessingEngine(db, messages, clock=clock).game_board(user.username)

    @app.post("/api/game/guess", response_model=GuessOutcome)
    async def submit_guess(payload: GuessRequest, user=Depends(get_current_user),
                           db: AsyncSession = Depends(get_db), messages: MessageStore = Depends(get_messages)):
        """Always 200: the result field tells correct / incorrect / limit_reached / error apart."""
        username = user.username
        engine = GuessingEngine(db, messages, clock=clock)
        result = await engine.submit_guess(payload.message_id, username, payload.guessed_username)
        if result == GuessResult.ERROR:
            return GuessOutcome(result=result)
        state = await engine.pair_state(payload.message_id, username)
        return GuessOutcome(
            result=result,
            attempts_used=state.attempts,
            attempts_left=state.attempts_left,
            solved=state.solved,
        )

    @app.get("/api/leaderboard", response_model=List[LeaderboardEntry])
    async def leaderboard(user=Depends(get_current_user), db: AsyncSession = Depends(get_db),
                          directory: Directory = Depends(get_directory)):
        return await Leaderboard(db, directory).compute()

    # --- Admin ---

    @app.post("/api/admin/users", response_model=AdminOpResult)
    async def admin_create_user(payload: CreateUserRequest, user=Depends(get_current_user),
                                db: AsyncSession = Depends(get_db), directory: Directory = Depends(get_directory)):
        admin = AdminService(db, directory, app.state.sessions)
        return await admin.create_user(user, payload.username, payload.password, payload.role)

    @app.delete("/api/admin/users/{username}", response_model=AdminOpResult)
    async def admin_delete_user(username: str, user=Depends(get_current_user),
                                db: AsyncSession = Depends(get_db), directory: Directory = Depends(get_directory)):
        admin = AdminService(db, directory, app.state.sessions)
        return await admin.delete_user(user, username)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
