import pytest
from fastapi.testclient import TestClient

# Import the FastAPI app and the dependencies we need to override
from .main import app, get_deck_store, get_rate_limiter
from .config import Settings, get_settings
from .rate_limit import RateLimiter
from .repository import DeckStore
from .tokens import ADMIN_SESSION, DRAW_LOCK

ADMIN_PASSWORD = "correct horse"
SAME_ORIGIN = {"origin": "http://testserver"}


# --- Fixtures ---


@pytest.fixture
def settings(tmp_path, monkeypatch):
    # make sure a developer's shell does not leak an admin password in
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    return Settings(
        data_dir=tmp_path / "data",
        env_file=tmp_path / ".env.local",
        production=False,
    )


@pytest.fixture
def store(settings):
    return DeckStore(settings.deck_path)


@pytest.fixture
def client(settings, store):
    # Point every handler at a throwaway deck file and a fresh limiter.
    limiter = RateLimiter()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_deck_store] = lambda: store
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client, settings):
    settings.env_file.write_text(f'ADMIN_PASSWORD="{ADMIN_PASSWORD}"\n')
    response = client.post(
        "/api/admin/login", json={"password": ADMIN_PASSWORD}, headers=SAME_ORIGIN
    )
    assert response.status_code == 200
    return client


# --- Public endpoints ---


def test_config_seeds_default_deck(client, settings):
    response = client.get("/api/config")

    assert response.status_code == 200
    assert "no-store" in response.headers["cache-control"]
    data = response.json()
    assert data["remainingTotal"] == 8
    assert [item["amount"] for item in data["deck"]] == [10_000, 20_000, 50_000, 100_000]
    # public view hides quantity
    assert set(data["deck"][0]) == {"amount", "remaining"}
    assert settings.deck_path.exists()


def test_draw_returns_amount_and_sets_lock_cookie(client):
    response = client.post("/api/draw", headers=SAME_ORIGIN)

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["amount"] in {10_000, 20_000, 50_000, 100_000}
    assert data["remainingTotal"] == 7
    assert DRAW_LOCK.cookie_name in response.cookies


def test_second_draw_is_locked_unless_continue(client):
    first = client.post("/api/draw", headers=SAME_ORIGIN)
    assert first.status_code == 200

    locked = client.post("/api/draw", headers=SAME_ORIGIN)
    assert locked.status_code == 429
    assert "24 hours" in locked.json()["detail"]

    again = client.post("/api/draw", json={"continue": True}, headers=SAME_ORIGIN)
    assert again.status_code == 200
    assert again.json()["remainingTotal"] == 6


def test_continue_must_be_literal_true(client):
    client.post("/api/draw", headers=SAME_ORIGIN)

    response = client.post("/api/draw", json={"continue": "yes"}, headers=SAME_ORIGIN)
    assert response.status_code == 429


def test_draw_exhaustion_then_rate_limit(client):
    """
    The default deck holds 8 envelopes and the draw limit is 10 per minute:
    8 wins, 2 exhausted answers, then the limiter kicks in.
    """
    statuses = [
        client.post("/api/draw", json={"continue": True}, headers=SAME_ORIGIN).status_code
        for _ in range(10)
    ]
    assert statuses == [200] * 8 + [409] * 2

    # another client still has budget and sees the exhausted deck
    exhausted = client.post(
        "/api/draw",
        json={"continue": True},
        headers={**SAME_ORIGIN, "x-forwarded-for": "10.0.0.9, 172.16.0.1"},
    )
    assert exhausted.status_code == 409
    assert exhausted.json()["exhausted"] is True
    assert exhausted.json()["remainingTotal"] == 0

    limited = client.post("/api/draw", json={"continue": True}, headers=SAME_ORIGIN)
    assert limited.status_code == 429
    assert int(limited.headers["retry-after"]) >= 1


def test_draw_rejects_cross_origin(client):
    response = client.post("/api/draw", headers={"origin": "https://evil.example"})

    assert response.status_code == 403
    assert client.get("/api/config").json()["remainingTotal"] == 8


def test_deposit_tops_up_existing_amount(client):
    response = client.post(
        "/api/deposit", json={"amount": 50_000, "quantity": 3}, headers=SAME_ORIGIN
    )

    assert response.status_code == 200
    data = response.json()
    assert data["added"] == {"amount": 50_000, "quantity": 3}
    assert data["remainingTotal"] == 11
    assert {"amount": 50_000, "remaining": 5} in data["deck"]


@pytest.mark.parametrize(
    "payload",
    [
        {"amount": 999, "quantity": 1},
        {"amount": 10_000, "quantity": 0},
        {"amount": 10_000.5, "quantity": 1},
        {"amount": 10_000},
        ["not", "an", "object"],
    ],
)
def test_deposit_rejects_bad_payload(client, payload):
    response = client.post("/api/deposit", json=payload, headers=SAME_ORIGIN)

    assert response.status_code == 400
    assert response.json()["detail"]


def test_deposit_rejects_non_json_body(client):
    response = client.post(
        "/api/deposit",
        content=b"amount=1000",
        headers={**SAME_ORIGIN, "content-type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 400


# --- Admin endpoints ---


def test_admin_status_requires_setup(client):
    response = client.get("/api/admin/status")

    assert response.json() == {"requiresSetup": True, "authenticated": False}


def test_admin_login_before_setup(client):
    response = client.post("/api/admin/login", json={"password": "x"}, headers=SAME_ORIGIN)
    assert response.status_code == 412


def test_admin_login_wrong_password(client, settings):
    settings.env_file.write_text(f"ADMIN_PASSWORD={ADMIN_PASSWORD}\n")

    response = client.post("/api/admin/login", json={"password": "nope"}, headers=SAME_ORIGIN)
    assert response.status_code == 401
    assert ADMIN_SESSION.cookie_name not in response.cookies

    status = client.get("/api/admin/status").json()
    assert status == {"requiresSetup": False, "authenticated": False}


def test_admin_password_from_environment(client, monkeypatch):
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)

    response = client.post(
        "/api/admin/login", json={"password": ADMIN_PASSWORD}, headers=SAME_ORIGIN
    )
    assert response.status_code == 200


def test_admin_status_when_logged_in(admin_client):
    data = admin_client.get("/api/admin/status").json()

    assert data["authenticated"] is True
    assert data["remainingTotal"] == 8
    assert data["deck"][0] == {"amount": 10_000, "quantity": 2, "remaining": 2}


def test_admin_deck_requires_session(client, settings):
    settings.env_file.write_text(f"ADMIN_PASSWORD={ADMIN_PASSWORD}\n")

    assert client.get("/api/admin/deck").status_code == 401
    response = client.post(
        "/api/admin/deck",
        json={"deck": [{"amount": 1000, "quantity": 1}]},
        headers=SAME_ORIGIN,
    )
    assert response.status_code == 401


def test_admin_save_deck(admin_client):
    payload = {
        "deck": [
            {"amount": 200_000, "quantity": 1},
            {"amount": 5_000, "quantity": 4, "remaining": 3},
        ]
    }
    response = admin_client.post("/api/admin/deck", json=payload, headers=SAME_ORIGIN)

    assert response.status_code == 200
    data = response.json()
    # sorted ascending, missing remaining means full
    assert data["deck"] == [
        {"amount": 5_000, "quantity": 4, "remaining": 3},
        {"amount": 200_000, "quantity": 1, "remaining": 1},
    ]
    assert data["remainingTotal"] == 4

    stored = admin_client.get("/api/admin/deck").json()
    assert stored == {"deck": data["deck"], "remainingTotal": 4}


@pytest.mark.parametrize(
    "deck, fragment",
    [
        ([{"amount": 5_000, "quantity": 1}, {"amount": 5_000, "quantity": 2}], "Duplicate amount"),
        ([{"amount": 5_000, "quantity": 1, "remaining": 2}], "exceeds quantity"),
        ([], "deck"),
        ([{"amount": 500, "quantity": 1}], "amount"),
        ([{"amount": 5_000, "quantity": 1.5}], "quantity"),
    ],
)
def test_admin_save_deck_validation(admin_client, deck, fragment):
    before = admin_client.get("/api/admin/deck").json()

    response = admin_client.post("/api/admin/deck", json={"deck": deck}, headers=SAME_ORIGIN)

    assert response.status_code == 400
    assert fragment in response.json()["detail"]
    assert admin_client.get("/api/admin/deck").json() == before


def test_admin_logout_clears_session(admin_client):
    response = admin_client.post("/api/admin/logout", headers=SAME_ORIGIN)
    assert response.status_code == 200

    assert admin_client.get("/api/admin/status").json()["authenticated"] is False


def test_draw_lock_signed_with_admin_password(admin_client):
    """Once the admin password exists, the lock cookie is signed with it."""
    response = admin_client.post("/api/draw", headers=SAME_ORIGIN)

    token = response.cookies[DRAW_LOCK.cookie_name]
    assert DRAW_LOCK.verify(token, ADMIN_PASSWORD)
    assert not DRAW_LOCK.verify(token, "lixi-2026-draw-lock")
