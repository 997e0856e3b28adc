import time

import jwt
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from avara.auth.verify import AuthContext, current_user, verify_jwt
from avara.errors import Unauthenticated
from avara.models.domain.user_domain import AuthenticatedUser

SECRET = "unit-test-jwt-secret-with-enough-length"


@pytest.fixture
def hs256_secret(monkeypatch):
    monkeypatch.setattr("avara.auth.verify.settings.SUPABASE_JWT_SECRET", SECRET)


def _token(**claims):
    payload = {"sub": "user-1", "aud": "authenticated", "exp": int(time.time()) + 60, **claims}
    return jwt.encode(payload, SECRET, algorithm="HS256")


def test_verify_hs256_token(hs256_secret):
    claims = verify_jwt(_token(email="a@example.com"))

    assert claims["sub"] == "user-1"
    assert claims["email"] == "a@example.com"


def test_expired_token_is_rejected(hs256_secret):
    with pytest.raises(Unauthenticated):
        verify_jwt(_token(exp=int(time.time()) - 10))


def test_wrong_audience_is_rejected(hs256_secret):
    with pytest.raises(Unauthenticated):
        verify_jwt(_token(aud="anon"))


def test_context_without_subject_is_unauthenticated():
    with pytest.raises(Unauthenticated):
        AuthContext().current_user()


def _app():
    app = FastAPI()

    @app.get("/me")
    def me(user: AuthenticatedUser = Depends(current_user)):
        return {"id": user.id}

    return app


def test_bearer_header_and_cookie_are_accepted(hs256_secret):
    client = TestClient(_app())

    by_header = client.get("/me", headers={"Authorization": f"Bearer {_token()}"})
    client.cookies.set("sb-access-token", _token(sub="user-2"))
    by_cookie = client.get("/me")

    assert by_header.json() == {"id": "user-1"}
    assert by_cookie.json() == {"id": "user-2"}


def test_missing_token_is_401():
    response = TestClient(_app()).get("/me")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
