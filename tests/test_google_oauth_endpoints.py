try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import copy
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from auth_gateway.clients.google_auth import GoogleOAuthClient, OAuthStateEncoder
from auth_gateway.main import app
from auth_gateway.models.identity import ExternalIdentity, TokenSet
from auth_gateway.services.google_linking import LinkErrorKind, LinkOutcome


class RecordingLinker:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.outcome = LinkOutcome(
            success=True,
            message="Google authentication successful",
            identity=ExternalIdentity(
                sub="google-sub-1", email="ada@example.com", name="Ada", picture=None
            ),
            tokens=TokenSet(
                id_token="id", access_token="access", refresh_token="refresh", expires_in=3600
            ),
        )

    async def link(self, code: str, redirect_uri: str) -> LinkOutcome:
        self.calls.append((code, redirect_uri))
        return self.outcome


@pytest.fixture()
def oauth_overrides():
    from auth_gateway import dependencies
    from auth_gateway.core.config import get_settings

    linker = RecordingLinker()
    encoder = OAuthStateEncoder(secret_key="endpoint-state-secret")
    base_settings = copy.deepcopy(get_settings())
    base_settings.frontend_url = None
    base_settings.google.redirect_uri = None

    app.dependency_overrides.update(
        {
            dependencies.get_google_account_linker: lambda: linker,
            dependencies.get_oauth_state_encoder: lambda: encoder,
            dependencies.get_google_oauth_client: lambda: GoogleOAuthClient(base_settings.google),
            dependencies.get_app_settings: lambda: base_settings,
        }
    )

    yield linker, encoder, base_settings

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


@pytest.mark.anyio
async def test_auth_url_contains_signed_state(oauth_overrides):
    _, encoder, _ = oauth_overrides

    async with _client() as client:
        response = await client.get("/google/auth")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    params = parse_qs(urlsplit(data["authUrl"]).query)
    assert params["state"] == [data["state"]]
    assert params["redirect_uri"] == ["http://testserver/google/callback"]
    assert encoder.verify(data["state"])["nonce"]


@pytest.mark.anyio
async def test_callback_without_code_is_rejected_before_linking(oauth_overrides):
    linker, _, _ = oauth_overrides

    async with _client() as client:
        response = await client.get("/google/callback", params={"state": "anything"})

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "Authorization code is required",
    }
    assert linker.calls == []


@pytest.mark.anyio
async def test_callback_returns_json_when_no_frontend(oauth_overrides):
    linker, encoder, _ = oauth_overrides

    async with _client() as client:
        response = await client.get(
            "/google/callback", params={"code": "oauth-code", "state": encoder.issue()}
        )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["userInfo"]["email"] == "ada@example.com"
    assert data["tokens"]["idToken"] == "id"
    assert linker.calls == [("oauth-code", "http://testserver/google/callback")]


@pytest.mark.anyio
async def test_callback_rejects_forged_state(oauth_overrides):
    linker, _, _ = oauth_overrides
    forged = OAuthStateEncoder(secret_key="attacker").issue()

    async with _client() as client:
        response = await client.get(
            "/google/callback", params={"code": "oauth-code", "state": forged}
        )

    assert response.status_code == 400
    assert linker.calls == []


@pytest.mark.anyio
async def test_callback_uses_configured_redirect_uri(oauth_overrides):
    linker, _, settings = oauth_overrides
    settings.google.redirect_uri = "https://api.example.com/auth/google/callback"

    async with _client() as client:
        await client.get("/google/callback", params={"code": "oauth-code"})

    assert linker.calls[-1][1] == "https://api.example.com/auth/google/callback"


@pytest.mark.anyio
async def test_callback_redirects_with_tokens_when_frontend_configured(oauth_overrides):
    _, _, settings = oauth_overrides
    settings.frontend_url = "https://app.example.com/oauth/success?from=google"

    async with _client() as client:
        response = await client.get("/google/callback", params={"code": "oauth-code"})

    assert response.status_code == 302
    location = urlsplit(response.headers["location"])
    assert location.netloc == "app.example.com"
    params = parse_qs(location.query)
    assert params["from"] == ["google"]
    assert params["success"] == ["true"]
    assert params["email"] == ["ada@example.com"]
    assert params["googleId"] == ["google-sub-1"]
    assert params["idToken"] == ["id"]
    assert params["refreshToken"] == ["refresh"]
    assert params["expiresIn"] == ["3600"]
    assert "picture" not in params


@pytest.mark.anyio
async def test_failed_link_is_structured_error(oauth_overrides):
    linker, _, _ = oauth_overrides
    linker.outcome = LinkOutcome(
        success=False,
        message="Sign-in failed after linking Google account: nope",
        error_kind=LinkErrorKind.OAUTH_LINK_FAILED,
    )

    async with _client() as client:
        response = await client.get("/google/callback", params={"code": "oauth-code"})

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "Sign-in failed after linking Google account: nope",
    }


@pytest.mark.anyio
async def test_failed_link_redirects_with_message(oauth_overrides):
    linker, _, settings = oauth_overrides
    settings.frontend_url = "https://app.example.com/oauth/success"
    linker.outcome = LinkOutcome(
        success=False,
        message="Failed to exchange authorization code (400).",
        error_kind=LinkErrorKind.OAUTH_EXCHANGE_FAILED,
    )

    async with _client() as client:
        response = await client.get("/google/callback", params={"code": "oauth-code"})

    assert response.status_code == 302
    params = parse_qs(urlsplit(response.headers["location"]).query)
    assert params["success"] == ["false"]
    assert "idToken" not in params


@pytest.mark.anyio
async def test_link_timeout_is_gateway_timeout(oauth_overrides):
    linker, _, _ = oauth_overrides
    linker.outcome = LinkOutcome(
        success=False,
        message="Google token endpoint timed out.",
        error_kind=LinkErrorKind.GATEWAY_TIMEOUT,
    )

    async with _client() as client:
        response = await client.get("/google/callback", params={"code": "oauth-code"})

    assert response.status_code == 504


def _app_with(**overrides):
    from auth_gateway.core.config import get_settings
    from auth_gateway.main import create_app

    settings = copy.deepcopy(get_settings())
    settings.google.redirect_uri = None
    settings.frontend_url = None
    for name, value in overrides.items():
        setattr(settings, name, value)
    return create_app(settings)


@pytest.mark.anyio
async def test_created_app_redirects_to_its_own_frontend_url():
    from auth_gateway import dependencies

    custom_app = _app_with(frontend_url="https://front.example.com/done")
    linker = RecordingLinker()
    custom_app.dependency_overrides[dependencies.get_google_account_linker] = lambda: linker

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=custom_app), base_url="http://testserver"
    ) as client:
        response = await client.get("/google/callback", params={"code": "c"})

    assert response.status_code == 302
    location = urlsplit(response.headers["location"])
    assert (location.netloc, location.path) == ("front.example.com", "/done")
    assert linker.calls == [("c", "http://testserver/google/callback")]


@pytest.mark.anyio
async def test_derived_redirect_uri_keeps_api_base_path():
    custom_app = _app_with(api_base_path="/auth")

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=custom_app), base_url="http://testserver"
    ) as client:
        response = await client.get("/google/auth")

    assert response.status_code == 200
    params = parse_qs(urlsplit(response.json()["authUrl"]).query)
    assert params["redirect_uri"] == ["http://testserver/auth/google/callback"]
