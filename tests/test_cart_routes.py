def test_guest_cart_lives_in_session_cookie(client, make_book):
    book = make_book(stock=5)

    response = client.post("/cart/add", json={"book_id": book.id, "quantity": 2})
    assert response.status_code == 200
    assert response.json()["item_count"] == 2

    cart = client.get("/cart").json()
    assert cart["item_count"] == 2
    assert cart["items"][0]["book_id"] == book.id
    assert client.get("/cart/count").json() == {"count": 2}


def test_separate_visitors_have_separate_carts(client, make_book):
    from fastapi.testclient import TestClient

    from bookstore.main import app

    book = make_book()
    client.post("/cart/add", json={"book_id": book.id, "quantity": 1})

    with TestClient(app) as other:
        assert other.get("/cart/count").json() == {"count": 0}


def test_stock_failure_is_reported_in_detail(client, make_book):
    book = make_book(stock=3)
    client.post("/cart/add", json={"book_id": book.id, "quantity": 2})

    response = client.post("/cart/add", json={"book_id": book.id, "quantity": 2})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error_code"] == "INSUFFICIENT_STOCK"
    assert detail["available_stock"] == 3
    assert detail["current_in_cart"] == 2


def test_unknown_book_is_404(client):
    response = client.post("/cart/add", json={"book_id": 999, "quantity": 1})
    assert response.status_code == 404
    assert response.json()["detail"]["error_code"] == "BOOK_NOT_FOUND"


def test_user_cart_update_remove_clear(client, user, make_book, auth_headers):
    headers = auth_headers(user)
    first, second = make_book(stock=5), make_book(stock=5)

    client.post("/cart/add", json={"book_id": first.id, "quantity": 1}, headers=headers)
    client.post("/cart/add", json={"book_id": second.id, "quantity": 1}, headers=headers)

    cart = client.put("/cart/update", json={"book_id": first.id, "quantity": 3}, headers=headers).json()
    assert cart["item_count"] == 4

    response = client.put("/cart/update", json={"book_id": first.id, "quantity": 6}, headers=headers)
    assert response.status_code == 400

    cart = client.delete(f"/cart/remove/{second.id}", headers=headers).json()
    assert [line["book_id"] for line in cart["items"]] == [first.id]

    assert client.delete(f"/cart/remove/{second.id}", headers=headers).status_code == 200

    client.delete("/cart/clear", headers=headers)
    assert client.get("/cart", headers=headers).json()["is_empty"] is True


def test_user_and_guest_carts_are_distinct(client, user, make_book, auth_headers):
    book = make_book()
    client.post("/cart/add", json={"book_id": book.id, "quantity": 1}, headers=auth_headers(user))

    assert client.get("/cart/count").json() == {"count": 0}
    assert client.get("/cart/count", headers=auth_headers(user)).json() == {"count": 1}


def test_bad_token_is_rejected(client):
    response = client.get("/cart", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401


def test_full_guest_cart_keeps_cookie_small(client, make_book):
    from bookstore.config import settings

    books = [
        make_book(title=f"The Collected Letters and Unpublished Essays of a Forgotten Victorian Naturalist, Vol. {n}")
        for n in range(settings.guest_cart_max_lines + 1)
    ]
    for book in books[:-1]:
        assert client.post("/cart/add", json={"book_id": book.id, "quantity": 2}).status_code == 200

    # browsers drop cookies over 4 KB
    assert len(client.cookies.get("bookstore_session")) <= 4096

    response = client.post("/cart/add", json={"book_id": books[-1].id, "quantity": 1})
    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "CART_FULL"

    # existing lines can still grow
    assert client.post("/cart/add", json={"book_id": books[0].id, "quantity": 1}).status_code == 200
    cart = client.get("/cart").json()
    assert len(cart["items"]) == settings.guest_cart_max_lines
    assert cart["items"][0]["title"].startswith("The Collected Letters")
