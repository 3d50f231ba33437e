"""Ownership checks for boards, lists and cards.

A card belongs to whoever owns the board its list sits on, so every check
walks card -> list -> board -> owner with one explicit lookup per hop.
Within a single request the checks always run in the same order:

1. existence of every entity named by the path (404),
2. ownership of the board at the top of the chain (403),
3. consistency between the path and the stored parent ids (400).
"""

from __future__ import annotations

from typing import Optional, Tuple

from .errors import BadRequest, Forbidden, NotFound
from .models import Board, Card, TaskList, User
from .storage import Storage


class ResourceGateway:
    def __init__(self, storage: Storage, user: User) -> None:
        self.storage = storage
        self.user = user

    # === lookups, 404 on any missing link ===

    def _board_or_404(self, board_id: int) -> Board:
        board = self.storage.get_board(board_id)
        if board is None:
            raise NotFound("Board not found")
        return board

    def _list_or_404(self, list_id: int) -> TaskList:
        task_list = self.storage.get_list(list_id)
        if task_list is None:
            raise NotFound("List not found")
        return task_list

    def _card_or_404(self, card_id: int, include_deleted: bool) -> Card:
        card = self.storage.get_card(card_id, include_deleted=include_deleted)
        if card is None:
            raise NotFound("Card not found")
        return card

    def _require_owner(self, board: Board) -> None:
        if board.user_id != self.user.id:
            raise Forbidden("Forbidden")

    # === checks used by the routes ===

    def board(self, board_id: int) -> Board:
        board = self._board_or_404(board_id)
        self._require_owner(board)
        return board

    def list(self, list_id: int, board_id: Optional[int] = None) -> Tuple[TaskList, Board]:
        """Resolve a list and its owning board.

        ``board_id`` is the board named in the request path, if any.
        """
        path_board = self._board_or_404(board_id) if board_id is not None else None
        task_list = self._list_or_404(list_id)
        parent = self._board_or_404(task_list.board_id)

        self._require_owner(parent)
        if path_board is not None:
            self._require_owner(path_board)

        if path_board is not None and task_list.board_id != path_board.id:
            raise BadRequest("List does not belong to this board")
        return task_list, parent

    def card(self, card_id: int, list_id: int, include_deleted: bool = False) -> Card:
        """Resolve a card addressed as ``/lists/{list_id}/cards/{card_id}``.

        Ownership is decided by the list in the path; a card stored under a
        different list is rejected afterwards as a path mismatch.
        """
        task_list = self._list_or_404(list_id)
        board = self._board_or_404(task_list.board_id)
        card = self._card_or_404(card_id, include_deleted)

        self._require_owner(board)

        if card.list_id != task_list.id:
            raise BadRequest("Card does not belong to this list")
        return card
