from contextlib import asynccontextmanager
from typing import List, Literal, Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .access import ResourceGateway
from .auth import get_current_user, get_sessions, get_storage
from .config import settings
from .errors import BadRequest, NotFound, Unauthorized, install_error_handlers
from .log import configure_logging
from .middleware import RequestIdMiddleware
from .models import (
    BoardCreate,
    BoardOut,
    BoardUpdate,
    CardCreate,
    CardOut,
    CardUpdate,
    Credentials,
    ListCreate,
    ListOut,
    ListUpdate,
    TokenRequest,
    User,
    UserOut,
    UserWithToken,
    board_out,
    card_out,
    list_out,
    user_out,
)
from .passwords import hash_password, verify_password
from .seed import seed_default_user
from .sessions import SessionStore
from .storage import DuplicateUsername, Storage, UnknownSortField
from .tokens import issue_token
from .utils import pagination_headers

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info(
        "taskboard.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )
    if settings.seed_default_user:
        seed_default_user(get_storage())
    yield
    logger.info("taskboard.shutdown")


app = FastAPI(title="Task Board API", version=__version__, lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", "X-Page", "X-Per-Page", "X-Total-Pages", "X-Request-ID"],
)
install_error_handlers(app)


# === Helpers ===


def gateway(
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> ResourceGateway:
    return ResourceGateway(storage, user)


def set_pagination(response: Response, total: int, page: Optional[int], limit: Optional[int]) -> None:
    if page is not None and limit is not None:
        response.headers.update(pagination_headers(total, page, limit))


def start_session(request: Request, response: Response, sessions: SessionStore, user: User) -> None:
    # a fresh id on every login, the previous one is discarded
    sessions.destroy(request.cookies.get(settings.session_cookie_name))
    sid = sessions.create(user.id)
    response.set_cookie(
        settings.session_cookie_name,
        sid,
        max_age=sessions.ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


def authenticate_credentials(storage: Storage, username: str, password: str) -> Optional[User]:
    user = storage.get_user_by_username(username)
    if user is None or not verify_password(password, user.password):
        return None
    return user


def non_null(changes: dict, *required: str) -> dict:
    """Drop explicit nulls for fields that cannot be cleared."""
    return {k: v for k, v in changes.items() if not (k in required and v is None)}


# === Health & metadata ===


@app.get("/api/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/api/version")
def version() -> dict:
    return {"version": __version__}


# === Auth endpoints ===


@app.post("/api/register", response_model=UserOut, status_code=201)
def register(
    payload: Credentials,
    request: Request,
    response: Response,
    storage: Storage = Depends(get_storage),
    sessions: SessionStore = Depends(get_sessions),
):
    if storage.get_user_by_username(payload.username) is not None:
        raise BadRequest("Username already exists")
    try:
        user = storage.create_user(payload.username, hash_password(payload.password))
    except DuplicateUsername:
        raise BadRequest("Username already exists")
    start_session(request, response, sessions, user)
    logger.info("auth.register", user_id=user.id, username=user.username)
    return user_out(user)


@app.post("/api/login", response_model=UserWithToken)
def login(
    payload: Credentials,
    request: Request,
    response: Response,
    storage: Storage = Depends(get_storage),
    sessions: SessionStore = Depends(get_sessions),
):
    user = authenticate_credentials(storage, payload.username, payload.password)
    if user is None:
        logger.info("auth.login_failed", username=payload.username)
        raise Unauthorized("Invalid username or password")
    start_session(request, response, sessions, user)
    logger.info("auth.login", user_id=user.id)
    return UserWithToken(id=user.id, username=user.username, token=issue_token(user))


@app.post("/api/token", response_model=UserWithToken)
def token(payload: TokenRequest, storage: Storage = Depends(get_storage)):
    if not payload.username or not payload.password:
        raise BadRequest("Username and password are required")
    user = authenticate_credentials(storage, payload.username, payload.password)
    if user is None:
        logger.info("auth.token_failed", username=payload.username)
        raise Unauthorized("Invalid username or password")
    logger.info("auth.token", user_id=user.id)
    return UserWithToken(id=user.id, username=user.username, token=issue_token(user))


@app.post("/api/logout")
def logout(request: Request, response: Response, sessions: SessionStore = Depends(get_sessions)):
    sessions.destroy(request.cookies.get(settings.session_cookie_name))
    response.delete_cookie(settings.session_cookie_name)
    return {"message": "Logged out"}


@app.get("/api/user", response_model=UserOut)
def current_user(user: User = Depends(get_current_user)):
    return user_out(user)


# === Board endpoints ===


@app.get("/api/boards", response_model=List[BoardOut])
def list_boards(
    response: Response,
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    boards, total = storage.get_boards(user.id, page, limit)
    set_pagination(response, total, page, limit)
    return [board_out(b) for b in boards]


@app.get("/api/boards/search", response_model=List[BoardOut])
def search_boards(
    name: Optional[str] = None,
    description: Optional[str] = None,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return [board_out(b) for b in storage.search_boards(user.id, name, description)]


@app.post("/api/boards", response_model=BoardOut, status_code=201)
def create_board(
    payload: BoardCreate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    board = storage.create_board(user.id, payload.name, payload.description)
    return board_out(board)


@app.get("/api/boards/{board_id}", response_model=BoardOut)
def get_board(board_id: int, access: ResourceGateway = Depends(gateway)):
    return board_out(access.board(board_id))


@app.put("/api/boards/{board_id}", response_model=BoardOut)
def update_board(
    board_id: int,
    payload: BoardUpdate,
    access: ResourceGateway = Depends(gateway),
    storage: Storage = Depends(get_storage),
):
    access.board(board_id)
    changes = non_null(payload.model_dump(exclude_unset=True), "name")
    board = storage.update_board(board_id, **changes)
    if board is None:
        raise NotFound("Board not found")
    return board_out(board)


@app.delete("/api/boards/{board_id}", status_code=204)
def delete_board(
    board_id: int,
    access: ResourceGateway = Depends(gateway),
    storage: Storage = Depends(get_storage),
):
    access.board(board_id)
    storage.delete_board(board_id)
    return Response(status_code=204)


# === List endpoints ===


@app.get("/api/boards/{board_id}/lists", response_model=List[ListOut])
def list_lists(
    board_id: int,
    response: Response,
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    access: ResourceGateway = Depends(gateway),
    storage: Storage = Depends(get_storage),
):
    access.board(board_id)
    lists, total = storage.get_lists(board_id, page, limit)
    set_pagination(response, total, page, limit)
    return [list_out(l) for l in lists]


@app.post("/api/boards/{board_id}/lists", response_model=ListOut, status_code=201)
def create_list(
    board_id: int,
    payload: ListCreate,
    access: ResourceGateway = Depends(gateway),
    storage: Storage = Depends(get_storage),
):
    access.board(board_id)
    return list_out(storage.create_list(board_id, payload.title))


@app.put("/api/boards/{board_id}/lists/{list_id}", response_model=ListOut)
def update_list(
    board_id: int,
    list_id: int,
    payload: ListUpdate,
    access: ResourceGateway = Depends(gateway),
    storage: Storage = Depends(get_storage),
):
    access.list(list_id, board_id=board_id)
    changes = non_null(payload.model_dump(exclude_unset=True), "title")
    task_list = storage.update_list(list_id, **changes)
    if task_list is None:
        raise NotFound("List not found")
    return list_out(task_list)


@app.delete("/api/boards/{board_id}/lists/{list_id}", status_code=204)
def delete_list(
    board_id: int,
    list_id: int,
    access: ResourceGateway = Depends(gateway),
    storage: Storage = Depends(get_storage),
):
    access.list(list_id, board_id=board_id)
    storage.delete_list(list_id)
    return Response(status_code=204)


# === Card endpoints ===


@app.get("/api/cards/search", response_model=List[CardOut])
def search_cards(
    title: Optional[str] = None,
    description: Optional[str] = None,
    label: Optional[str] = None,
    due: Optional[str] = None,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    cards = storage.search_cards(user.id, title=title, description=description, label=label, due=due)
    return [card_out(c) for c in cards]


@app.get("/api/lists/{list_id}/cards", response_model=List[CardOut])
def list_cards(
    list_id: int,
    response: Response,
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    sort: Optional[str] = None,
    order: Literal["asc", "desc"] = "asc",
    access: ResourceGateway = Depends(gateway),
    storage: Storage = Depends(get_storage),
):
    access.list(list_id)
    try:
        cards, total = storage.get_cards(list_id, page, limit, sort=sort, order=order)
    except UnknownSortField as e:
        raise BadRequest(f"Cannot sort by '{e}'")
    set_pagination(response, total, page, limit)
    return [card_out(c) for c in cards]


@app.post("/api/lists/{list_id}/cards", response_model=CardOut, status_code=201)
def create_card(
    list_id: int,
    payload: CardCreate,
    access: ResourceGateway = Depends(gateway),
    storage: Storage = Depends(get_storage),
):
    access.list(list_id)
    card = storage.create_card(
        list_id,
        payload.title,
        description=payload.description,
        status=payload.status,
        due_date=payload.dueDate,
        labels=payload.labels,
        attachments=payload.attachments,
    )
    return card_out(card)


@app.get("/api/lists/{list_id}/cards/{card_id}", response_model=CardOut)
def get_card(list_id: int, card_id: int, access: ResourceGateway = Depends(gateway)):
    return card_out(access.card(card_id, list_id))


@app.patch("/api/lists/{list_id}/cards/{card_id}", response_model=CardOut)
def update_card(
    list_id: int,
    card_id: int,
    payload: CardUpdate,
    access: ResourceGateway = Depends(gateway),
    storage: Storage = Depends(get_storage),
):
    access.card(card_id, list_id)
    changes = non_null(payload.model_dump(exclude_unset=True), "title", "labels", "attachments", "listId")
    if "listId" in changes and changes["listId"] != list_id:
        # moving to another list requires owning that list too
        access.list(changes["listId"])
    renamed = {"dueDate": "due_date", "listId": "list_id"}
    card = storage.update_card(card_id, **{renamed.get(k, k): v for k, v in changes.items()})
    if card is None:
        raise NotFound("Card not found")
    return card_out(card)


@app.delete("/api/lists/{list_id}/cards/{card_id}", status_code=204)
def delete_card(
    list_id: int,
    card_id: int,
    access: ResourceGateway = Depends(gateway),
    storage: Storage = Depends(get_storage),
):
    # already-deleted cards still resolve so a repeated delete succeeds
    access.card(card_id, list_id, include_deleted=True)
    storage.delete_card(card_id)
    return Response(status_code=204)
