try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import time

import pytest
from botocore.exceptions import ClientError

from auth_gateway.clients.cognito import (
    CognitoIdentityClient,
    IdentityErrorKind,
    IdentityProviderError,
)
from auth_gateway.core.config import CognitoSettings
from auth_gateway.core.errors import UpstreamTimeoutError


def _client_error(code: str, message: str = "rejected", operation: str = "Op") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeBotoClient:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.responses: dict[str, dict] = {}
        self.errors: dict[str, Exception] = {}
        self.delay = 0.0

    def _invoke(self, operation: str, params: dict) -> dict:
        self.calls.append((operation, params))
        if self.delay:
            time.sleep(self.delay)
        if operation in self.errors:
            raise self.errors[operation]
        return self.responses.get(operation, {})

    def __getattr__(self, operation: str):
        return lambda **params: self._invoke(operation, params)


def _settings() -> CognitoSettings:
    return CognitoSettings(
        COGNITO_CLIENT_ID="app-client",
        COGNITO_USER_POOL_ID="us-east-1_pool",
    )


@pytest.fixture()
def boto_client() -> FakeBotoClient:
    return FakeBotoClient()


@pytest.fixture()
def identity(boto_client: FakeBotoClient) -> CognitoIdentityClient:
    return CognitoIdentityClient(_settings(), timeout_seconds=1.0, client=boto_client)


@pytest.mark.asyncio
async def test_sign_up_sends_attributes_and_returns_sub(identity, boto_client) -> None:
    boto_client.responses["sign_up"] = {"UserSub": "sub-123", "UserConfirmed": False}

    user_sub = await identity.sign_up(
        "ada@example.com", "Secret1!", {"email": "ada@example.com", "name": "Ada"}
    )

    assert user_sub == "sub-123"
    operation, params = boto_client.calls[-1]
    assert operation == "sign_up"
    assert params["ClientId"] == "app-client"
    assert params["Username"] == "ada@example.com"
    assert {"Name": "name", "Value": "Ada"} in params["UserAttributes"]


@pytest.mark.asyncio
async def test_password_auth_returns_token_set(identity, boto_client) -> None:
    boto_client.responses["initiate_auth"] = {
        "AuthenticationResult": {
            "IdToken": "id",
            "AccessToken": "access",
            "RefreshToken": "refresh",
            "ExpiresIn": 3600,
        }
    }

    tokens = await identity.initiate_password_auth("ada@example.com", "Secret1!")

    assert tokens.id_token == "id"
    assert tokens.refresh_token == "refresh"
    _, params = boto_client.calls[-1]
    assert params["AuthFlow"] == "USER_PASSWORD_AUTH"
    assert params["AuthParameters"] == {
        "USERNAME": "ada@example.com",
        "PASSWORD": "Secret1!",
    }


@pytest.mark.parametrize(
    ("code", "kind"),
    [
        ("UsernameExistsException", IdentityErrorKind.USER_EXISTS),
        ("InvalidPasswordException", IdentityErrorKind.INVALID_PASSWORD),
        ("UserNotConfirmedException", IdentityErrorKind.NOT_CONFIRMED),
        ("NotAuthorizedException", IdentityErrorKind.INVALID_CREDENTIALS),
        ("CodeMismatchException", IdentityErrorKind.CODE_MISMATCH),
        ("ExpiredCodeException", IdentityErrorKind.EXPIRED_CODE),
        ("UserNotFoundException", IdentityErrorKind.USER_NOT_FOUND),
        ("TooManyRequestsException", IdentityErrorKind.RATE_LIMITED),
        ("InternalErrorException", IdentityErrorKind.UNKNOWN),
    ],
)
@pytest.mark.asyncio
async def test_provider_codes_translate_to_kinds(identity, boto_client, code, kind) -> None:
    boto_client.errors["initiate_auth"] = _client_error(code, "provider says no")

    with pytest.raises(IdentityProviderError) as excinfo:
        await identity.initiate_password_auth("ada@example.com", "wrong")

    assert excinfo.value.kind is kind
    assert excinfo.value.provider_code == code
    assert excinfo.value.message == "provider says no"


@pytest.mark.asyncio
async def test_refresh_maps_not_authorized_to_invalid_refresh_token(identity, boto_client) -> None:
    boto_client.errors["initiate_auth"] = _client_error(
        "NotAuthorizedException", "Invalid Refresh Token"
    )

    with pytest.raises(IdentityProviderError) as excinfo:
        await identity.initiate_refresh_auth("stale-refresh")

    assert excinfo.value.kind is IdentityErrorKind.INVALID_REFRESH_TOKEN
    _, params = boto_client.calls[-1]
    assert params["AuthFlow"] == "REFRESH_TOKEN_AUTH"


@pytest.mark.asyncio
async def test_challenge_response_is_reported(identity, boto_client) -> None:
    boto_client.responses["initiate_auth"] = {"ChallengeName": "NEW_PASSWORD_REQUIRED"}

    with pytest.raises(IdentityProviderError) as excinfo:
        await identity.initiate_password_auth("ada@example.com", "Secret1!")

    assert excinfo.value.kind is IdentityErrorKind.CHALLENGE_REQUIRED
    assert "NEW_PASSWORD_REQUIRED" in excinfo.value.message


@pytest.mark.asyncio
async def test_admin_create_user_suppresses_invitation(identity, boto_client) -> None:
    await identity.admin_create_user(
        "ada@example.com", "Google-1!abc", {"email": "ada@example.com"}
    )

    operation, params = boto_client.calls[-1]
    assert operation == "admin_create_user"
    assert params["UserPoolId"] == "us-east-1_pool"
    assert params["MessageAction"] == "SUPPRESS"


@pytest.mark.asyncio
async def test_slow_provider_call_times_out(boto_client) -> None:
    boto_client.delay = 0.5
    identity = CognitoIdentityClient(_settings(), timeout_seconds=0.05, client=boto_client)

    with pytest.raises(UpstreamTimeoutError):
        await identity.confirm_sign_up("ada@example.com", "123456")


@pytest.mark.asyncio
async def test_missing_expiry_is_passed_through_as_absent(identity, boto_client) -> None:
    boto_client.responses["initiate_auth"] = {
        "AuthenticationResult": {"IdToken": "id", "AccessToken": "access"}
    }

    tokens = await identity.initiate_refresh_auth("refresh")

    assert tokens.expires_in is None
    assert tokens.to_payload() == {"idToken": "id", "accessToken": "access"}
