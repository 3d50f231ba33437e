import pytest

from conftest import basic_auth, bearer, register


@pytest.fixture
def alice(make_client):
    client = make_client()
    register(client, "alice", "pw1")
    return client


@pytest.fixture
def bob(make_client):
    register(make_client(), "bob", "pw2")
    return make_client(headers=basic_auth("bob", "pw2"))


@pytest.fixture
def board_list(alice):
    board = alice.post("/api/boards", json={"name": "QA"}).json()
    task_list = alice.post(f"/api/boards/{board['id']}/lists", json={"title": "Todo"}).json()
    return board, task_list


def cards_url(task_list, card=None):
    url = f"/api/lists/{task_list['id']}/cards"
    return f"{url}/{card['id']}" if card else url


def test_create_card_defaults(alice, board_list):
    _, task_list = board_list
    r = alice.post(cards_url(task_list), json={"title": "Task1"})
    assert r.status_code == 201
    assert r.json() == {
        "id": 1,
        "title": "Task1",
        "description": None,
        "status": "todo",
        "dueDate": None,
        "listId": task_list["id"],
        "labels": [],
        "attachments": [],
    }


def test_card_output_has_no_tombstone_flag(alice, board_list):
    _, task_list = board_list
    card = alice.post(cards_url(task_list), json={"title": "Task1"}).json()
    assert "isDeleted" not in card


def test_alice_and_bob_scenario(make_client):
    alice = make_client()
    register(alice, "alice", "pw1")
    token = alice.post("/api/login", json={"username": "alice", "password": "pw1"}).json()["token"]
    board = alice.post("/api/boards", json={"name": "QA"}, headers=bearer(token)).json()
    task_list = alice.post(f"/api/boards/{board['id']}/lists", json={"title": "Todo"}).json()
    card = alice.post(cards_url(task_list), json={"title": "Task1"}).json()

    assert alice.get(cards_url(task_list, card)).status_code == 200

    bob = make_client()
    register(bob, "bob", "pw2")
    r = bob.get(cards_url(task_list, card))
    assert r.status_code == 403
    assert r.json() == {"message": "Forbidden"}


def test_foreign_card_routes_are_403(alice, bob, board_list):
    _, task_list = board_list
    card = alice.post(cards_url(task_list), json={"title": "Task1"}).json()
    assert bob.get(cards_url(task_list)).status_code == 403
    assert bob.post(cards_url(task_list), json={"title": "x"}).status_code == 403
    assert bob.patch(cards_url(task_list, card), json={"title": "x"}).status_code == 403
    assert bob.delete(cards_url(task_list, card)).status_code == 403
    assert alice.get(cards_url(task_list, card)).json()["title"] == "Task1"


def test_missing_list_and_card_are_404(alice, board_list):
    _, task_list = board_list
    assert alice.get("/api/lists/99/cards").json() == {"message": "List not found"}
    r = alice.get(cards_url(task_list, {"id": 99}))
    assert r.status_code == 404
    assert r.json() == {"message": "Card not found"}


def test_card_under_wrong_list_is_400(alice, board_list):
    board, task_list = board_list
    other = alice.post(f"/api/boards/{board['id']}/lists", json={"title": "Done"}).json()
    card = alice.post(cards_url(task_list), json={"title": "Task1"}).json()
    r = alice.patch(cards_url(other, card), json={"title": "x"})
    assert r.status_code == 400
    assert r.json() == {"message": "Card does not belong to this list"}


def test_patch_card(alice, board_list):
    _, task_list = board_list
    card = alice.post(cards_url(task_list), json={"title": "Task1", "description": "d"}).json()
    r = alice.patch(
        cards_url(task_list, card),
        json={"status": "done", "dueDate": "2025-06-01", "labels": ["qa"], "description": None},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["title"] == "Task1"
    assert body["status"] == "done"
    assert body["dueDate"] == "2025-06-01"
    assert body["labels"] == ["qa"]
    assert body["description"] is None


def test_move_card_to_own_list(alice, board_list):
    board, task_list = board_list
    done = alice.post(f"/api/boards/{board['id']}/lists", json={"title": "Done"}).json()
    card = alice.post(cards_url(task_list), json={"title": "Task1"}).json()
    r = alice.patch(cards_url(task_list, card), json={"listId": done["id"]})
    assert r.json()["listId"] == done["id"]
    assert alice.get(cards_url(task_list)).json() == []
    assert [c["title"] for c in alice.get(cards_url(done)).json()] == ["Task1"]


def test_move_card_to_foreign_list_is_403(alice, bob, board_list):
    _, task_list = board_list
    card = alice.post(cards_url(task_list), json={"title": "Task1"}).json()
    bob_board = bob.post("/api/boards", json={"name": "bob"}).json()
    bob_list = bob.post(f"/api/boards/{bob_board['id']}/lists", json={"title": "x"}).json()
    r = alice.patch(cards_url(task_list, card), json={"listId": bob_list["id"]})
    assert r.status_code == 403
    assert alice.get(cards_url(task_list, card)).json()["listId"] == task_list["id"]


def test_move_card_to_missing_list_is_404(alice, board_list):
    _, task_list = board_list
    card = alice.post(cards_url(task_list), json={"title": "Task1"}).json()
    assert alice.patch(cards_url(task_list, card), json={"listId": 404}).status_code == 404


def test_delete_card_twice(alice, board_list):
    _, task_list = board_list
    card = alice.post(cards_url(task_list), json={"title": "Task1"}).json()
    assert alice.delete(cards_url(task_list, card)).status_code == 204
    assert alice.delete(cards_url(task_list, card)).status_code == 204

    assert alice.get(cards_url(task_list, card)).status_code == 404
    assert alice.get(cards_url(task_list)).json() == []
    assert alice.get("/api/cards/search", params={"title": "Task1"}).json() == []
    assert alice.patch(cards_url(task_list, card), json={"title": "back"}).status_code == 404


def test_delete_missing_card_is_404(alice, board_list):
    _, task_list = board_list
    assert alice.delete(cards_url(task_list, {"id": 5})).status_code == 404


def test_cards_sorted_by_due_date(alice, board_list):
    _, task_list = board_list
    alice.post(cards_url(task_list), json={"title": "undated"})
    alice.post(cards_url(task_list), json={"title": "june", "dueDate": "2025-06-01"})
    alice.post(cards_url(task_list), json={"title": "may", "dueDate": "2025-05-01"})

    asc = alice.get(cards_url(task_list), params={"sort": "dueDate", "order": "asc"}).json()
    assert [c["title"] for c in asc] == ["may", "june", "undated"]

    desc = alice.get(cards_url(task_list), params={"sort": "dueDate", "order": "desc"}).json()
    assert [c["title"] for c in desc] == ["undated", "june", "may"]


def test_cards_sort_and_paginate(alice, board_list):
    _, task_list = board_list
    for title in ["c", "a", "b"]:
        alice.post(cards_url(task_list), json={"title": title})
    r = alice.get(cards_url(task_list), params={"sort": "title", "page": 1, "limit": 2})
    assert [c["title"] for c in r.json()] == ["a", "b"]
    assert r.headers["X-Total-Count"] == "3"
    assert r.headers["X-Total-Pages"] == "2"


def test_cards_sort_title_ignores_case(alice, board_list):
    _, task_list = board_list
    for title in ["banana", "Cherry", "apple"]:
        alice.post(cards_url(task_list), json={"title": title})
    r = alice.get(cards_url(task_list), params={"sort": "title"})
    assert [c["title"] for c in r.json()] == ["apple", "banana", "Cherry"]


def test_cards_sort_by_labels(alice, board_list):
    _, task_list = board_list
    alice.post(cards_url(task_list), json={"title": "release", "labels": ["release"]})
    alice.post(cards_url(task_list), json={"title": "qa", "labels": ["QA"]})
    r = alice.get(cards_url(task_list), params={"sort": "labels", "order": "desc"})
    assert r.status_code == 200
    assert [c["title"] for c in r.json()] == ["release", "qa"]


def test_cards_bad_sort_parameters(alice, board_list):
    _, task_list = board_list
    assert alice.get(cards_url(task_list), params={"sort": "nope"}).status_code == 400
    assert alice.get(cards_url(task_list), params={"sort": "title", "order": "up"}).status_code == 400


def test_card_search_is_scoped_to_user(alice, bob, board_list):
    _, task_list = board_list
    alice.post(cards_url(task_list), json={"title": "Write tests", "labels": ["QA"]})
    bob_board = bob.post("/api/boards", json={"name": "bob"}).json()
    bob_list = bob.post(f"/api/boards/{bob_board['id']}/lists", json={"title": "x"}).json()
    bob.post(cards_url(bob_list), json={"title": "Write docs", "labels": ["qa"]})

    assert [c["title"] for c in alice.get("/api/cards/search", params={"title": "write"}).json()] == ["Write tests"]
    assert [c["title"] for c in bob.get("/api/cards/search", params={"label": "QA"}).json()] == ["Write docs"]


def test_card_validation(alice, board_list):
    _, task_list = board_list
    r = alice.post(cards_url(task_list), json={"title": ""})
    assert r.status_code == 400
    assert "title" in r.json()["errors"]["fieldErrors"]


def test_card_title_is_trimmed(alice, board_list):
    _, task_list = board_list
    assert alice.post(cards_url(task_list), json={"title": "   "}).status_code == 400

    card = alice.post(cards_url(task_list), json={"title": "Task1"}).json()
    r = alice.patch(cards_url(task_list, card), json={"title": "  Trimmed  "})
    assert r.status_code == 200
    assert r.json()["title"] == "Trimmed"

    r = alice.patch(cards_url(task_list, card), json={"title": " "})
    assert r.status_code == 400
    assert "title" in r.json()["errors"]["fieldErrors"]
