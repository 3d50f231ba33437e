from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from .models import Board, Card, TaskList, User
from .utils import contains, paginate, parse_due_date, sort_nulls_aside

# wire name -> Card attribute
CARD_SORT_FIELDS = {
    "id": "id",
    "title": "title",
    "description": "description",
    "status": "status",
    "dueDate": "due_date",
    "listId": "list_id",
    "labels": "labels",
    "attachments": "attachments",
}


class DuplicateUsername(Exception):
    pass


class UnknownSortField(ValueError):
    pass


class _Table:
    """An id-keyed map with its own lock and id counter.

    Every mutation, including the id increment, happens under the lock.
    """

    def __init__(self) -> None:
        self.rows: Dict[int, Any] = {}
        self.lock = threading.Lock()
        self._next_id = 1

    def allocate_id(self) -> int:
        # caller holds self.lock
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def values(self) -> List[Any]:
        with self.lock:
            return list(self.rows.values())


class Storage:
    """In-memory store for users, boards, lists and cards."""

    def __init__(self) -> None:
        self.users = _Table()
        self.boards = _Table()
        self.lists = _Table()
        self.cards = _Table()

    # === User operations ===
    def get_user(self, user_id: int) -> Optional[User]:
        return self.users.rows.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self.users.values():
            if user.username == username:
                return user
        return None

    def create_user(self, username: str, password_hash: str) -> User:
        with self.users.lock:
            if any(u.username == username for u in self.users.rows.values()):
                raise DuplicateUsername(username)
            user = User(id=self.users.allocate_id(), username=username, password=password_hash)
            self.users.rows[user.id] = user
        return user

    # === Board operations ===
    def get_boards(
        self, user_id: int, page: Optional[int] = None, limit: Optional[int] = None
    ) -> Tuple[List[Board], int]:
        boards = [b for b in self.boards.values() if b.user_id == user_id]
        return paginate(boards, page, limit), len(boards)

    def search_boards(
        self, user_id: int, name: Optional[str] = None, description: Optional[str] = None
    ) -> List[Board]:
        boards = [b for b in self.boards.values() if b.user_id == user_id]
        if name:
            boards = [b for b in boards if contains(b.name, name)]
        if description:
            boards = [b for b in boards if contains(b.description, description)]
        return boards

    def get_board(self, board_id: int) -> Optional[Board]:
        return self.boards.rows.get(board_id)

    def create_board(self, user_id: int, name: str, description: Optional[str]) -> Board:
        with self.boards.lock:
            board = Board(
                id=self.boards.allocate_id(),
                name=name.strip(),
                description=description.strip() if description else None,
                user_id=user_id,
            )
            self.boards.rows[board.id] = board
        return board

    def update_board(self, board_id: int, **changes: Any) -> Optional[Board]:
        with self.boards.lock:
            board = self.boards.rows.get(board_id)
            if board is None:
                return None
            # build a new record so a failed update never leaves a half-applied one
            updated = replace(board, **changes)
            self.boards.rows[board_id] = updated
        return updated

    def delete_board(self, board_id: int) -> bool:
        with self.boards.lock:
            return self.boards.rows.pop(board_id, None) is not None

    # === List operations ===
    def get_lists(
        self, board_id: int, page: Optional[int] = None, limit: Optional[int] = None
    ) -> Tuple[List[TaskList], int]:
        lists = [l for l in self.lists.values() if l.board_id == board_id]
        return paginate(lists, page, limit), len(lists)

    def get_list(self, list_id: int) -> Optional[TaskList]:
        return self.lists.rows.get(list_id)

    def create_list(self, board_id: int, title: str) -> TaskList:
        with self.lists.lock:
            task_list = TaskList(id=self.lists.allocate_id(), title=title.strip(), board_id=board_id)
            self.lists.rows[task_list.id] = task_list
        return task_list

    def update_list(self, list_id: int, **changes: Any) -> Optional[TaskList]:
        with self.lists.lock:
            task_list = self.lists.rows.get(list_id)
            if task_list is None:
                return None
            updated = replace(task_list, **changes)
            self.lists.rows[list_id] = updated
        return updated

    def delete_list(self, list_id: int) -> bool:
        with self.lists.lock:
            return self.lists.rows.pop(list_id, None) is not None

    # === Card operations ===
    def get_cards(
        self,
        list_id: int,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        sort: Optional[str] = None,
        order: str = "asc",
    ) -> Tuple[List[Card], int]:
        cards = [c for c in self.cards.values() if c.list_id == list_id and not c.is_deleted]
        if sort:
            attr = CARD_SORT_FIELDS.get(sort)
            if attr is None:
                raise UnknownSortField(sort)
            cards = sort_nulls_aside(
                cards, key=lambda c: _sort_value(getattr(c, attr)), descending=order == "desc"
            )
        return paginate(cards, page, limit), len(cards)

    def search_cards(
        self,
        user_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        label: Optional[str] = None,
        due: Optional[str] = None,
        today: Optional[date] = None,
    ) -> List[Card]:
        board_ids = {b.id for b in self.boards.values() if b.user_id == user_id}
        list_ids = {l.id for l in self.lists.values() if l.board_id in board_ids}
        cards = [c for c in self.cards.values() if c.list_id in list_ids and not c.is_deleted]

        if title:
            cards = [c for c in cards if contains(c.title, title)]
        if description:
            cards = [c for c in cards if contains(c.description, description)]
        if label:
            cards = [c for c in cards if any(contains(l, label) for l in c.labels)]
        if due:
            today = today or date.today()
            cards = [c for c in cards if _due_matches(c.due_date, due, today)]
        return cards

    def get_card(self, card_id: int, include_deleted: bool = False) -> Optional[Card]:
        card = self.cards.rows.get(card_id)
        if card is None or (card.is_deleted and not include_deleted):
            return None
        return card

    def create_card(
        self,
        list_id: int,
        title: str,
        description: Optional[str] = None,
        status: Optional[str] = "todo",
        due_date: Optional[str] = None,
        labels: Optional[List[str]] = None,
        attachments: Optional[List[str]] = None,
    ) -> Card:
        with self.cards.lock:
            card = Card(
                id=self.cards.allocate_id(),
                title=title.strip(),
                description=description,
                status=status,
                due_date=due_date,
                list_id=list_id,
                labels=list(labels or []),
                attachments=list(attachments or []),
            )
            self.cards.rows[card.id] = card
        return card

    def update_card(self, card_id: int, **changes: Any) -> Optional[Card]:
        with self.cards.lock:
            card = self.cards.rows.get(card_id)
            if card is None or card.is_deleted:
                return None
            updated = replace(card, **changes)
            self.cards.rows[card_id] = updated
        return updated

    def delete_card(self, card_id: int) -> bool:
        """Tombstone a card. Succeeds for any existing record, deleted or not."""
        with self.cards.lock:
            card = self.cards.rows.get(card_id)
            if card is None:
                return False
            if not card.is_deleted:
                self.cards.rows[card_id] = replace(card, is_deleted=True)
        return True


def _sort_value(value: Any) -> Any:
    """Case-insensitive text, lists joined like their text form, numbers as-is."""
    if isinstance(value, str):
        return value.casefold()
    if isinstance(value, list):
        return ",".join(value).casefold()
    return value


def _due_matches(due_date: Optional[str], due: str, today: date) -> bool:
    if not due_date:
        return False
    if due in ("overdue", "today", "upcoming"):
        parsed = parse_due_date(due_date)
        if parsed is None:
            return False
        if due == "overdue":
            return parsed < today
        if due == "today":
            return parsed == today
        return parsed > today
    return due in due_date


storage = Storage()
