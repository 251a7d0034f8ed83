from datetime import datetime, timedelta, timezone

import pytest

from auth import repository, security, seed


@pytest.fixture
def sessions(monkeypatch, users):
    rows: dict[int, dict] = {}

    async def start_session(*, user_id, token_hash, expires_at, user_agent=None, ip_address=None):
        row = {
            "id": len(rows) + 1,
            "user_id": user_id,
            "token_hash": token_hash,
            "expires_at": expires_at,
            "ended_at": None,
            "superseded_by": None,
        }
        rows[row["id"]] = row
        return dict(row)

    async def find_session(token_hash):
        return next((dict(r) for r in rows.values() if r["token_hash"] == token_hash), None)

    async def end_session(*, session_id=None, token_hash=None, superseded_by=None):
        for row in rows.values():
            if row["ended_at"] is None and (row["id"] == session_id or row["token_hash"] == token_hash):
                row["ended_at"] = datetime.now(timezone.utc)
                row["superseded_by"] = superseded_by
                return True
        return False

    async def end_user_sessions(user_id):
        live = [r for r in rows.values() if r["user_id"] == user_id and r["ended_at"] is None]
        for row in live:
            row["ended_at"] = datetime.now(timezone.utc)
        return len(live)

    for fn in (start_session, find_session, end_session, end_user_sessions):
        monkeypatch.setattr(repository, fn.__name__, fn)
    return rows


def _login(client, email="test@example.com", password="password"):
    return client.post("/auth/login", json={"email": email, "password": password})


class TestSecurity:
    def test_password_hash_round_trip(self):
        hashed = security.hash_password("s3cret")
        assert security.verify_password("s3cret", hashed)
        assert not security.verify_password("wrong", hashed)
        assert not security.verify_password("s3cret", "not-a-hash")

    def test_access_token_claims(self):
        token = security.build_access_token(user_id=7, email="a@b.c")
        payload = security.decode_access_token(token)
        assert payload["sub"] == "7"
        assert payload["type"] == "access"

    def test_tampered_token_rejected(self):
        token = security.build_access_token(user_id=7, email="a@b.c")
        with pytest.raises(security.AuthSecurityError):
            security.decode_access_token(token[:-2] + "xx")

    def test_session_token_hash_is_stable(self):
        raw = security.build_session_token()
        assert security.hash_session_token(raw) == security.hash_session_token(raw)
        assert security.hash_session_token(raw) != raw


class TestLogin:
    def test_login_issues_tokens(self, client, sessions):
        resp = _login(client, email="  TEST@example.com ")
        assert resp.status_code == 200
        body = resp.json()
        assert body["user"]["email"] == "test@example.com"
        assert body["tokens"]["token_type"] == "bearer"
        assert len(sessions) == 1

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['tokens']['access_token']}"})
        assert me.status_code == 200
        assert me.json()["id"] == 1

    @pytest.mark.parametrize("email,password", [("test@example.com", "nope"), ("who@example.com", "password")])
    def test_bad_credentials(self, client, sessions, email, password):
        resp = _login(client, email=email, password=password)
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid email or password."
        assert sessions == {}

    def test_inactive_user(self, client, sessions, users):
        users[1]["is_active"] = False
        assert _login(client).status_code == 403

    def test_me_requires_token(self, client, users):
        assert client.get("/auth/me").status_code == 401


class TestSessions:
    def test_refresh_rotates_session(self, client, sessions):
        old = _login(client).json()["tokens"]["session_token"]

        resp = client.post("/auth/refresh", json={"session_token": old})
        assert resp.status_code == 200
        new = resp.json()["session_token"]
        assert new != old
        assert sessions[1]["ended_at"] is not None
        assert sessions[1]["superseded_by"] == 2

        reused = client.post("/auth/refresh", json={"session_token": old})
        assert reused.status_code == 401
        assert reused.json()["detail"] == "Session has ended."

    def test_refresh_expired(self, client, sessions):
        token = _login(client).json()["tokens"]["session_token"]
        sessions[1]["expires_at"] = datetime.now(timezone.utc) - timedelta(seconds=1)

        resp = client.post("/auth/refresh", json={"session_token": token})
        assert resp.status_code == 401
        assert sessions[1]["ended_at"] is not None

    def test_refresh_unknown(self, client, sessions):
        resp = client.post("/auth/refresh", json={"session_token": "x" * 40})
        assert resp.status_code == 401

    def test_logout_single_session(self, client, sessions):
        token = _login(client).json()["tokens"]["session_token"]
        resp = client.post("/auth/logout", json={"session_token": token})
        assert resp.json() == {"ok": True}
        assert sessions[1]["ended_at"] is not None

    def test_logout_all_sessions(self, client, sessions):
        _login(client)
        access = _login(client).json()["tokens"]["access_token"]

        resp = client.post("/auth/logout", json={}, headers={"Authorization": f"Bearer {access}"})
        assert resp.status_code == 200
        assert all(row["ended_at"] is not None for row in sessions.values())

    def test_logout_without_anything(self, client, sessions):
        assert client.post("/auth/logout", json={}).status_code == 400


class TestSeed:
    async def test_creates_default_user_once(self, monkeypatch):
        created: list[dict] = []

        async def find_user(*, user_id=None, email=None):
            return next((u for u in created if u["email"] == email), None)

        async def create_user(*, email, password_hash, name=None, is_active=True):
            row = {"id": len(created) + 1, "email": email, "password_hash": password_hash, "name": name}
            created.append(row)
            return row

        monkeypatch.setattr(repository, "find_user", find_user)
        monkeypatch.setattr(repository, "create_user", create_user)
        monkeypatch.delenv("SEED_USER_EMAIL", raising=False)
        monkeypatch.delenv("SEED_USER_PASSWORD", raising=False)

        row, was_created = await seed.seed_default_user()
        assert was_created
        assert row["email"] == "test@example.com"
        assert security.verify_password("password", row["password_hash"])

        _, was_created_again = await seed.seed_default_user()
        assert not was_created_again
        assert len(created) == 1
