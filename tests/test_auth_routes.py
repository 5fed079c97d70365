def _register(client, email="reader@example.com", password="secret123"):
    return client.post(
        "/auth/register",
        json={
            "first_name": "Mai",
            "last_name": "Tran",
            "email": email,
            "password": password,
            "confirm_password": password,
        },
    )


def test_register_and_login(client):
    response = _register(client, email="Reader@Example.com")
    assert response.status_code == 201
    assert response.json()["email"] == "reader@example.com"

    response = client.post("/auth/login", json={"email": "reader@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"


def test_duplicate_email(client):
    _register(client)
    assert _register(client).status_code == 400


def test_password_mismatch(client):
    response = client.post(
        "/auth/register",
        json={
            "first_name": "Mai",
            "email": "x@example.com",
            "password": "secret123",
            "confirm_password": "other123",
        },
    )
    assert response.status_code == 422


def test_wrong_password_and_locked_account(client, make_user):
    locked = make_user(can_login=False)

    response = client.post("/auth/login", json={"email": "nobody@example.com", "password": "secret123"})
    assert response.status_code == 401

    response = client.post("/auth/login", json={"email": locked.email, "password": "secret123"})
    assert response.status_code == 403


def test_login_migrates_guest_cart(client, user, make_book):
    book = make_book(stock=5)
    client.post("/cart/add", json={"book_id": book.id, "quantity": 2})

    response = client.post("/auth/login", json={"email": user.email, "password": "secret123"})
    body = response.json()
    assert body["migrated_cart_items"] == 1

    headers = {"Authorization": f"Bearer {body['access_token']}"}
    assert client.get("/cart/count", headers=headers).json() == {"count": 2}
    assert client.get("/cart/count").json() == {"count": 0}


def test_profile(client, user, auth_headers):
    headers = auth_headers(user)

    assert client.get("/users/me", headers=headers).json()["email"] == user.email

    response = client.put("/users/me", json={"first_name": "Hoa", "phone_number": "0911"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["first_name"] == "Hoa"
    assert response.json()["phone_number"] == "0911"

    assert client.get("/users/me").status_code == 401


def test_change_password(client, user, auth_headers):
    headers = auth_headers(user)
    payload = {"current_password": "secret123", "new_password": "newsecret", "confirm_password": "newsecret"}

    response = client.put("/users/me/password", json=payload, headers=headers)
    assert response.status_code == 200

    old_login = client.post("/auth/login", json={"email": user.email, "password": "secret123"})
    assert old_login.status_code == 401
    new_login = client.post("/auth/login", json={"email": user.email, "password": "newsecret"})
    assert new_login.status_code == 200


def test_change_password_rejections(client, user, auth_headers):
    headers = auth_headers(user)

    wrong = client.put(
        "/users/me/password",
        json={"current_password": "guess123", "new_password": "newsecret", "confirm_password": "newsecret"},
        headers=headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Current password is incorrect"

    mismatch = client.put(
        "/users/me/password",
        json={"current_password": "secret123", "new_password": "newsecret", "confirm_password": "other123"},
        headers=headers,
    )
    assert mismatch.status_code == 422

    too_short = client.put(
        "/users/me/password",
        json={"current_password": "secret123", "new_password": "abc", "confirm_password": "abc"},
        headers=headers,
    )
    assert too_short.status_code == 422

    unchanged = client.put(
        "/users/me/password",
        json={"current_password": "secret123", "new_password": "secret123", "confirm_password": "secret123"},
        headers=headers,
    )
    assert unchanged.status_code == 400

    anonymous = {"current_password": "secret123", "new_password": "newsecret", "confirm_password": "newsecret"}
    assert client.put("/users/me/password", json=anonymous).status_code == 401
    assert client.post("/auth/login", json={"email": user.email, "password": "secret123"}).status_code == 200
