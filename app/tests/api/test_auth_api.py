import re

from app.services.notification_service import get_notifier

API = "/api/v1"


def _capture(monkeypatch):
    sent = []
    monkeypatch.setattr(get_notifier(), "sender", sent.append)
    return sent


def _code(message):
    return re.search(r"\b(\d{6})\b", message.body).group(1)


def test_register_login_and_me(client, monkeypatch):
    sent = _capture(monkeypatch)

    r = client.post(f"{API}/auth/otp/send", json={"email": "meera@example.com", "purpose": "REGISTRATION"})
    assert r.status_code == 202, r.text
    assert len(sent) == 1 and sent[0].to == "meera@example.com"

    r = client.post(
        f"{API}/auth/register",
        json={
            "full_name": "Meera Rao",
            "email": "meera@example.com",
            "password": "long-enough-pw",
            "otp": _code(sent[0]),
        },
    )
    assert r.status_code == 201, r.text
    assert r.json()["verificationStatus"] == "PENDING"

    r = client.post(f"{API}/auth/login", json={"email": "meera@example.com", "password": "long-enough-pw"})
    assert r.status_code == 200, r.text
    token = r.json()["access_token"]

    r = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["email"] == "meera@example.com"
    assert r.json()["role"] == "USER"


def test_register_with_bad_code(client, monkeypatch):
    _capture(monkeypatch)
    client.post(f"{API}/auth/otp/send", json={"email": "x@example.com"})
    r = client.post(
        f"{API}/auth/register",
        json={"full_name": "X", "email": "x@example.com", "password": "long-enough-pw", "otp": "999999x"},
    )
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"


def test_login_with_wrong_password(client):
    r = client.post(f"{API}/auth/login", json={"email": "nobody@example.com", "password": "whatever1"})
    assert r.status_code == 401


def test_otp_send_is_rate_limited(client, monkeypatch):
    _capture(monkeypatch)
    codes = [
        client.post(f"{API}/auth/otp/send", json={"email": "spam@example.com"}).status_code
        for _ in range(4)
    ]
    assert codes[:3] == [202, 202, 202]
    assert codes[3] == 429


def test_invalid_token_is_401(client):
    r = client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
