import pytest

from placemap.core.rate_limit import RateLimit, SlidingWindowLimiter, limiter
from placemap.core.security import InvalidToken, create_access_token, decode_access_token


def _register(client, email="u1@example.com", nickname="빵순이"):
    return client.post("/auth/register", json={"email": email, "password": "password123", "nickname": nickname})


def test_register_and_me(client):
    r = _register(client)
    assert r.status_code == 201, r.text
    token = r.json()["access_token"]
    assert token

    r2 = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert r2.status_code == 200, r2.text
    body = r2.json()
    assert body["email"] == "u1@example.com"
    assert body["nickname"] == "빵순이"
    assert body["is_active"] is True


def test_register_duplicate_email_409(client):
    assert _register(client, email="dup@example.com").status_code == 201
    assert _register(client, email="dup@example.com").status_code == 409


def test_register_requires_nickname(client):
    r = client.post("/auth/register", json={"email": "n@example.com", "password": "password123", "nickname": ""})
    assert r.status_code == 422


def test_login_invalid_credentials_401(client):
    r = client.post("/auth/token", data={"username": "nope@example.com", "password": "password123"})
    assert r.status_code == 401


def test_login_success(client):
    _register(client, email="u2@example.com")
    r = client.post("/auth/token", data={"username": "u2@example.com", "password": "password123"})
    assert r.status_code == 200, r.text
    assert "access_token" in r.json()


def test_me_rejects_garbage_token(client):
    r = client.get("/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_rate_limit_on_login(client):
    limiter.reset()

    for _ in range(10):
        r = client.post("/auth/token", data={"username": "x@example.com", "password": "wrongpass"})
        assert r.status_code in (401, 200)

    r = client.post("/auth/token", data={"username": "x@example.com", "password": "wrongpass"})
    assert r.status_code == 429, r.text
    assert "Retry-After" in r.headers


def test_me_rejects_expired_token(client):
    r = _register(client, email="old@example.com")
    user_id = client.get("/me", headers={"Authorization": f"Bearer {r.json()['access_token']}"}).json()["id"]

    expired = create_access_token(user_id, expires_minutes=-1)
    r2 = client.get("/me", headers={"Authorization": f"Bearer {expired}"})

    assert r2.status_code == 401
    assert r2.headers["WWW-Authenticate"] == "Bearer"


def test_decode_access_token_roundtrip():
    assert decode_access_token(create_access_token("user-1")) == "user-1"
    with pytest.raises(InvalidToken):
        decode_access_token("not-a-jwt")


def test_register_rejects_blank_nickname(client):
    r = client.post("/auth/register", json={"email": "b@example.com", "password": "password123", "nickname": "   "})
    assert r.status_code == 422


def test_rate_limit_parse():
    assert RateLimit.parse("5/60") == RateLimit(limit=5, window_seconds=60)
    assert RateLimit.parse(" 3 ") == RateLimit(limit=3, window_seconds=60)
    with pytest.raises(ValueError):
        RateLimit.parse("0/60")


def test_limiter_counts_per_scope_and_client():
    rules = SlidingWindowLimiter()
    rule = RateLimit(limit=2, window_seconds=60)

    assert rules.hit("login", "1.2.3.4", rule) == 0
    assert rules.hit("login", "1.2.3.4", rule) == 0
    assert 1 <= rules.hit("login", "1.2.3.4", rule) <= 60
    assert rules.hit("login", "5.6.7.8", rule) == 0
    assert rules.hit("register", "1.2.3.4", rule) == 0
