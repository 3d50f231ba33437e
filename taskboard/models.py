from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# === Domain objects used by the in-memory store ===


@dataclass
class User:
    id: int
    username: str
    password: str  # bcrypt hash, never serialized


@dataclass
class Board:
    id: int
    name: str
    description: Optional[str]
    user_id: int


@dataclass
class TaskList:
    id: int
    title: str
    board_id: int


@dataclass
class Card:
    id: int
    title: str
    description: Optional[str]
    status: Optional[str]
    due_date: Optional[str]
    list_id: int
    labels: List[str] = field(default_factory=list)
    attachments: List[str] = field(default_factory=list)
    is_deleted: bool = False


# === API Schemas ===


class TrimmedModel(BaseModel):
    """Surrounding whitespace is stripped before length checks run."""

    model_config = ConfigDict(str_strip_whitespace=True)


class Credentials(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=200)


class TokenRequest(BaseModel):
    # missing fields are reported as 400 by the handler, not by validation
    username: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    id: int
    username: str


class UserWithToken(UserOut):
    token: str


class BoardCreate(TrimmedModel):
    name: str = Field(min_length=1, max_length=140)
    description: Optional[str] = Field(default=None, max_length=2000)


class BoardUpdate(TrimmedModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=140)
    description: Optional[str] = Field(default=None, max_length=2000)


class BoardOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    userId: int


class ListCreate(TrimmedModel):
    title: str = Field(min_length=1, max_length=140)


class ListUpdate(TrimmedModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=140)


class ListOut(BaseModel):
    id: int
    title: str
    boardId: int


class CardCreate(TrimmedModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)
    status: Optional[str] = Field(default="todo", max_length=40)
    dueDate: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    attachments: List[str] = Field(default_factory=list)


class CardUpdate(TrimmedModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)
    status: Optional[str] = Field(default=None, max_length=40)
    dueDate: Optional[str] = None
    labels: Optional[List[str]] = None
    attachments: Optional[List[str]] = None
    listId: Optional[int] = None


class CardOut(BaseModel):
    id: int
    title: str
    description: Optional[str]
    status: Optional[str]
    dueDate: Optional[str]
    listId: int
    labels: List[str]
    attachments: List[str]


def user_out(user: User) -> UserOut:
    return UserOut(id=user.id, username=user.username)


def board_out(board: Board) -> BoardOut:
    return BoardOut(
        id=board.id,
        name=board.name,
        description=board.description,
        userId=board.user_id,
    )


def list_out(task_list: TaskList) -> ListOut:
    return ListOut(id=task_list.id, title=task_list.title, boardId=task_list.board_id)


def card_out(card: Card) -> CardOut:
    return CardOut(
        id=card.id,
        title=card.title,
        description=card.description,
        status=card.status,
        dueDate=card.due_date,
        listId=card.list_id,
        labels=list(card.labels),
        attachments=list(card.attachments),
    )
