def test_admin_routes_require_admin(client, user, auth_headers):
    assert client.get("/admin/books", headers=auth_headers(user)).status_code == 403
    assert client.get("/admin/orders").status_code == 401


def test_book_crud(client, admin, make_category, auth_headers):
    headers = auth_headers(admin)
    category = make_category("History")

    payload = {"title": "SPQR", "author": "Mary Beard", "price": 200000, "stock": 4, "category_id": category.id}
    first = client.post("/admin/books", json=payload, headers=headers)
    second = client.post("/admin/books", json=payload, headers=headers)
    assert first.status_code == 201
    assert first.json()["slug"] == "spqr"
    assert second.json()["slug"] == "spqr-2"

    bad = client.post("/admin/books", json={**payload, "category_id": 999}, headers=headers)
    assert bad.status_code == 400

    book_id = first.json()["id"]
    updated = client.put(f"/admin/books/{book_id}", json={"discount_price": 150000}, headers=headers).json()
    assert updated["display_price"] == 150000

    too_high = client.put(f"/admin/books/{book_id}", json={"discount_price": 250000}, headers=headers)
    assert too_high.status_code == 400

    stock = client.patch(f"/admin/books/{book_id}/stock", json={"stock": 9}, headers=headers).json()
    assert stock["stock"] == 9

    toggled = client.patch(f"/admin/books/{book_id}/toggle-active", headers=headers).json()
    assert toggled["is_active"] is False
    assert client.get(f"/books/{book_id}").status_code == 404

    listing = client.get("/admin/books", headers=headers).json()
    assert listing["total_items"] == 2

    assert client.delete(f"/admin/books/{second.json()['id']}", headers=headers).status_code == 200
    assert client.get(f"/admin/books/{second.json()['id']}", headers=headers).json()["is_active"] is False


def test_category_crud(client, admin, make_book, auth_headers):
    headers = auth_headers(admin)

    created = client.post("/admin/categories", json={"name": "Travel"}, headers=headers)
    assert created.status_code == 201
    assert client.post("/admin/categories", json={"name": "travel"}, headers=headers).status_code == 400

    category_id = created.json()["id"]
    renamed = client.put(f"/admin/categories/{category_id}", json={"name": "Journeys"}, headers=headers)
    assert renamed.json()["name"] == "Journeys"

    make_book(category_id=category_id)
    assert client.delete(f"/admin/categories/{category_id}", headers=headers).status_code == 400

    empty = client.post("/admin/categories", json={"name": "Empty"}, headers=headers).json()
    assert client.delete(f"/admin/categories/{empty['id']}", headers=headers).status_code == 200


def test_order_status_management(client, admin, user, make_book, auth_headers, checkout_payload):
    book = make_book(stock=5)
    client.post("/cart/add", json={"book_id": book.id, "quantity": 2}, headers=auth_headers(user))
    order = client.post("/orders/checkout", json=checkout_payload(), headers=auth_headers(user)).json()
    headers = auth_headers(admin)

    listing = client.get("/admin/orders", params={"status": "pending"}, headers=headers).json()
    assert listing["total_items"] == 1

    response = client.put(f"/admin/orders/{order['id']}/status", json={"status": "delivered"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "INVALID_TRANSITION"

    response = client.put(f"/admin/orders/{order['id']}/status", json={"status": "processing"}, headers=headers)
    assert response.json()["status"] == "processing"

    # the customer can no longer cancel once processing started
    response = client.post(f"/orders/{order['id']}/cancel", headers=auth_headers(user))
    assert response.status_code == 400

    detail = client.get(f"/admin/orders/{order['id']}", headers=headers).json()
    assert detail["status"] == "processing"
    assert client.put("/admin/orders/999/status", json={"status": "processing"}, headers=headers).status_code == 404


def test_user_management(client, admin, make_user, auth_headers):
    headers = auth_headers(admin)
    customer = make_user()

    listing = client.get("/admin/users", params={"search": customer.email}, headers=headers).json()
    assert listing["total_items"] == 1

    promoted = client.patch(f"/admin/users/{customer.id}", json={"role": "admin"}, headers=headers).json()
    assert promoted["role"] == "admin"

    locked = client.patch(f"/admin/users/{customer.id}/toggle-lock", headers=headers).json()
    assert locked["can_login"] is False
    assert client.get("/users/me", headers=auth_headers(customer)).status_code == 403

    assert client.patch(f"/admin/users/{admin.id}/toggle-lock", headers=headers).status_code == 400
    assert client.patch(f"/admin/users/{customer.id}", json={"role": "owner"}, headers=headers).status_code == 422


def test_review_moderation(client, admin, user, make_book, auth_headers, session):
    book = make_book()
    review = client.post(
        f"/reviews/books/{book.id}", json={"rating": 1, "comment": "Spam"}, headers=auth_headers(user)
    ).json()["review"]
    headers = auth_headers(admin)

    assert client.get("/admin/reviews", params={"book_id": book.id}, headers=headers).json()["total_items"] == 1
    assert client.delete(f"/admin/reviews/{review['id']}", headers=headers).status_code == 200

    session.refresh(book)
    assert book.rating == 0


def test_book_update_refuses_nulls_for_required_fields(client, admin, make_book, auth_headers):
    headers = auth_headers(admin)
    book = make_book(title="Middlemarch", price=180000)

    for payload in ({"price": None}, {"title": None}, {"stock": None, "author": None}):
        response = client.put(f"/admin/books/{book.id}", json=payload, headers=headers)
        assert response.status_code == 422

    # nullable fields can still be cleared
    cleared = client.put(f"/admin/books/{book.id}", json={"discount_price": None, "isbn": None}, headers=headers)
    assert cleared.status_code == 200

    current = client.get(f"/admin/books/{book.id}", headers=headers).json()
    assert current["title"] == "Middlemarch"
    assert current["price"] == 180000


def test_book_save_failure_is_rolled_back(client, admin, make_book, auth_headers, session, monkeypatch):
    from sqlalchemy.exc import IntegrityError

    headers = auth_headers(admin)
    book = make_book(title="Persuasion", stock=3)

    def failing_commit(*args, **kwargs):
        raise IntegrityError("UPDATE book", {}, Exception("NOT NULL constraint failed"))

    monkeypatch.setattr(session, "commit", failing_commit)
    response = client.patch(f"/admin/books/{book.id}/stock", json={"stock": 8}, headers=headers)
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.json() == {"detail": "Something went wrong. Please try again."}
    session.refresh(book)
    assert book.stock == 3
