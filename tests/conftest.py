"""Shared fixtures: in-memory SQLite store, API client and data builders."""

import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENV", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from bookstore import models  # noqa: F401
from bookstore.database import get_session
from bookstore.main import app
from bookstore.models.book import Book
from bookstore.models.category import Category
from bookstore.models.user import User
from bookstore.schemas.orders_schemas import CheckoutRequest
from bookstore.utils.hash import hash_password
from bookstore.utils.token import create_access_token


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def client(session):
    def get_session_override():
        yield session

    app.dependency_overrides[get_session] = get_session_override
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_category(session):
    def _make(name="Fiction", **values):
        category = Category(name=name, **values)
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    return _make


@pytest.fixture()
def make_book(session):
    counter = {"n": 0}

    def _make(**values):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "title": f"Book {n}",
            "slug": f"book-{n}",
            "author": f"Author {n}",
            "price": 100000,
            "stock": 5,
        }
        data.update(values)
        book = Book(**data)
        session.add(book)
        session.commit()
        session.refresh(book)
        return book

    return _make


@pytest.fixture()
def make_user(session):
    counter = {"n": 0}

    def _make(role="user", password="secret123", **values):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "first_name": f"User{n}",
            "last_name": "Test",
            "username": f"user{n}",
            "email": f"user{n}@example.com",
            "password": hash_password(password),
            "role": role,
        }
        data.update(values)
        user = User(**data)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture()
def user(make_user):
    return make_user()


@pytest.fixture()
def admin(make_user):
    return make_user(role="admin")


def _auth_headers(user):
    token = create_access_token({"user_id": user.id})
    return {"Authorization": f"Bearer {token}"}


def _checkout_payload(**overrides):
    data = {
        "shipping_first_name": "Lan",
        "shipping_last_name": "Nguyen",
        "shipping_phone": "0901234567",
        "shipping_email": "lan@example.com",
        "shipping_address": "12 Le Loi",
        "shipping_city": "Hanoi",
        "shipping_postal_code": "100000",
        "shipping_country": "Vietnam",
        "payment_method": "Cash on Delivery",
    }
    data.update(overrides)
    return data


@pytest.fixture()
def auth_headers():
    return _auth_headers


@pytest.fixture()
def checkout_payload():
    return _checkout_payload


@pytest.fixture()
def checkout():
    return CheckoutRequest(**_checkout_payload())
