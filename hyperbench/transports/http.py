"""REST insert transport, request builder and token authenticator."""

import httpx
import structlog
from pydantic import ValidationError

from hyperbench.config import HttpSettings
from hyperbench.exceptions import AuthenticationError
from hyperbench.pool import BaseTransport
from hyperbench.records import (
    AuthCredential,
    AuthRequest,
    AuthToken,
    Envelope,
    InsertedRecord,
    generate_record,
)

logger = structlog.get_logger()


def create_client(
    settings: HttpSettings, transport: httpx.BaseTransport | None = None
) -> httpx.Client:
    """One pooled client shared by every worker; failed requests are never retried."""
    return httpx.Client(
        transport=transport or httpx.HTTPTransport(retries=0),
        timeout=httpx.Timeout(settings.http_timeout),
    )


def get_auth_token(client: httpx.Client, settings: HttpSettings) -> str:
    """Exchange the configured credentials for a bearer token."""
    body = AuthRequest(
        token_id=settings.token_id,
        token=settings.token,
        collection_id=settings.auth_collection_id,
        data=AuthCredential(username=settings.auth_username, password=settings.auth_password),
    )
    url = f"{settings.base_url}/api/rest/auth/token-based"
    try:
        resp = client.post(
            url,
            content=body.model_dump_json(),
            headers={"Content-Type": "application/json"},
        )
    except httpx.HTTPError as exc:
        raise AuthenticationError(f"auth request to {url} failed: {exc}") from exc

    try:
        envelope = Envelope[AuthToken].model_validate_json(resp.content)
    except ValidationError as exc:
        raise AuthenticationError(
            f"auth response was not a valid envelope (HTTP {resp.status_code})"
        ) from exc

    if envelope.error.status:
        raise AuthenticationError(envelope.error.message or envelope.error.status)
    if envelope.data is None or not envelope.data.token:
        raise AuthenticationError(f"auth response carried no token (HTTP {resp.status_code})")

    logger.info("auth_token_acquired", base_url=settings.base_url)
    return envelope.data.token


class HttpRequestBuilder:
    """Builds one authenticated insert request per call."""

    def __init__(self, client: httpx.Client, settings: HttpSettings, auth_token: str) -> None:
        self._client = client
        self.url = (
            f"{settings.base_url}/api/rest/project/{settings.project_id}"
            f"/collection/{settings.target_collection_id}/record"
        )
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {auth_token}",
        }

    def __call__(self) -> httpx.Request:
        record = generate_record()
        return self._client.build_request(
            "POST",
            self.url,
            content=record.model_dump_json(by_alias=True, exclude_none=True),
            headers=self._headers,
        )


class HttpTransport(BaseTransport):
    """Sends a prepared insert and checks the echoed record id.

    A write counts as successful only on a 2xx status whose envelope carries a
    non-empty ``data._id``.
    """

    name = "http"

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def send(self, request: httpx.Request) -> httpx.Response:
        return self._client.send(request)

    def is_success(self, response: httpx.Response) -> bool:
        if not response.is_success:
            logger.warning("insert_rejected", status_code=response.status_code)
            return False
        envelope = Envelope[InsertedRecord].model_validate_json(response.content)
        if envelope.error.status:
            logger.warning(
                "insert_error_envelope",
                status=envelope.error.status,
                message=envelope.error.message,
            )
            return False
        if envelope.data is None or not envelope.data.id:
            logger.warning("insert_missing_id", status_code=response.status_code)
            return False
        return True

    def close(self) -> None:
        # the client is shared; it is closed by whoever created it
        pass
