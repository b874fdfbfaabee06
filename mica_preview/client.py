"""HTTP client for the remote evaluation service."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import ValidationError

from .document import DocumentKind
from .errors import ApiError, TransportError, UnauthorizedError, ValidationViolation
from .observability import get_logger
from .request import PreviewRequest
from .schemas import VIOLATION_LIST, ApiErrorBody

logger = get_logger("mica_preview.client")

LOGIN_PATH = "/api/mica/oidc/login"
VALIDATION_ERRORS_CONTENT_TYPE = "application/vnd.concord-validation-errors-v1+json"
# tells the server not to answer with 'WWW-Authenticate: Basic'
UI_REQUEST_HEADER = "X-Concord-UI-Request"


@dataclass(frozen=True)
class PreviewResult:
    """Successful evaluation output plus any non-fatal validation messages."""

    payload: Any
    validation_messages: List[List[str]] = field(default_factory=list)

    @property
    def data(self) -> Any:
        if isinstance(self.payload, dict):
            return self.payload.get("data")
        return None


class Navigator(Protocol):
    """Capability used to send the user back to the login entry point."""

    def redirect_to_login(self, login_url: str) -> None:
        ...


class Evaluator(Protocol):
    async def evaluate(self, request: PreviewRequest) -> PreviewResult:
        ...


def parse_validation_messages(payload: Any) -> List[List[str]]:
    """Collect the messages of a view's ``validation`` section, skipping empty entries."""

    if not isinstance(payload, dict):
        return []
    entries = payload.get("validation")
    if not isinstance(entries, list):
        return []
    result: List[List[str]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        messages = [
            str(message.get("message"))
            for message in entry.get("messages") or []
            if isinstance(message, dict) and message.get("message") is not None
        ]
        if messages:
            result.append(messages)
    return result


def parse_api_error(response: httpx.Response) -> ApiError:
    """Translate a non-2xx response into the matching :class:`ApiError`."""

    content_type = response.headers.get("content-type", "")
    status = response.status_code
    status_text = response.reason_phrase
    error_cls = UnauthorizedError if status == 401 else ApiError

    if VALIDATION_ERRORS_CONTENT_TYPE in content_type:
        try:
            raw = response.json()
        except ValueError:
            raw = response.text
        try:
            entries = VIOLATION_LIST.validate_python(raw)
        except ValidationError:
            return error_cls(
                f"Invalid error response: {json.dumps(raw, default=str)}",
                status=status,
                status_text=status_text,
            )
        return error_cls(
            "Validation error",
            type="detailed-validation-error",
            status=status,
            status_text=status_text,
            violations=[ValidationViolation(id=entry.id, message=entry.message) for entry in entries],
        )

    if "application/json" in content_type:
        try:
            raw = response.json()
        except ValueError:
            return error_cls(f"{status} {status_text}", status=status, status_text=status_text)
        body = ApiErrorBody.model_validate(raw) if isinstance(raw, dict) else ApiErrorBody()
        message = body.message or json.dumps(raw, default=str)
        return error_cls(message, type=body.type or "unknown", status=status, status_text=status_text)

    return error_cls(f"{status} {status_text}", status=status, status_text=status_text)


class EvaluationClient:
    """
    Async client for the Mica preview endpoints.

    Configuration:
        - base_url: service root, e.g. ``https://mica.example.com`` (required)
        - api_key: optional value for the ``Authorization`` header
        - timeout: transport timeout in seconds (default: 30)
        - navigator: optional :class:`Navigator`, notified on HTTP 401

    The underlying :class:`httpx.AsyncClient` is created lazily and must be
    released with :meth:`aclose` or by using the client as a context manager.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        navigator: Optional[Navigator] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = float(timeout)
        self.navigator = navigator
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                follow_redirects=False,
            )
        return self._http_client

    def _build_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            UI_REQUEST_HEADER: "true",
        }
        if self.api_key:
            headers["Authorization"] = self.api_key
        return headers

    @property
    def login_url(self) -> str:
        return f"{self.base_url}{LOGIN_PATH}"

    async def evaluate(self, request: PreviewRequest) -> PreviewResult:
        """
        Submit a preview request and return the evaluated result.

        Raises:
            UnauthorizedError: on HTTP 401, after notifying the navigator
            ApiError: when the service rejects the request
            TransportError: when the call fails or the body is not JSON
        """
        client = self._get_http_client()
        try:
            response = await client.post(request.path, json=request.to_body(), headers=self._build_headers())
        except httpx.HTTPError as exc:
            raise TransportError(f"Evaluation request failed: {exc}") from exc

        if response.is_error:
            error = parse_api_error(response)
            if isinstance(error, UnauthorizedError) and self.navigator is not None:
                self.navigator.redirect_to_login(self.login_url)
            logger.info(
                "Preview rejected with HTTP %s",
                response.status_code,
                extra={
                    "mica_event": "preview_rejected",
                    "mica_data": {"status": response.status_code, "type": error.type},
                },
            )
            raise error

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError("Evaluation service returned an invalid JSON body") from exc

        if request.kind is DocumentKind.VIEW:
            return PreviewResult(payload=payload, validation_messages=parse_validation_messages(payload))
        return PreviewResult(payload=payload)

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "EvaluationClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = [
    "EvaluationClient",
    "Evaluator",
    "LOGIN_PATH",
    "Navigator",
    "PreviewResult",
    "parse_api_error",
    "parse_validation_messages",
]
