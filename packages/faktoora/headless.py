"""Headless upload API: bearer-key authentication and request handling.

Framework-free handlers for the three programmatic endpoints:

- ``POST /api/v1/upload-url``  → :func:`create_upload_url`
- ``POST /api/v1/invoices``    → :func:`register_invoice`
- ``POST /api/v1/statements``  → :func:`register_statement`

Each handler takes a :class:`HeadlessRequest` and returns a
:class:`HeadlessResponse`; the hosting web layer only translates to and from
its own request/response objects.

Request bodies are validated with pydantic models; the first failing field
decides the 400 message, in field declaration order.

Status codes: 405 for non-POST, 401 for a missing, unknown or revoked key,
403 for a key without the ``upload:write`` scope, 400 for validation
failures, 200 for the upload URL and 201 for registrations.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .api_keys import (
    API_KEY_PREFIX,
    UPLOAD_WRITE_SCOPE,
    ApiKeyStore,
    compute_api_key_hash,
    extract_bearer_token,
)
from .documents import DocumentStore
from .logging_setup import get_logger
from .models import MONTH_KEY_PATTERN
from .months import MonthService

_logger = get_logger("faktoora.headless")

MAX_STORAGE_ID_LENGTH = 128
MAX_FILE_NAME_LENGTH = 255
MAX_CSV_CONTENT_LENGTH = 5_000_000

INVALID_BODY = "Invalid request body"
CSV_CONTENT_REQUIRED = "csvContent is required for csv statements"

_FIELD_MESSAGES = {
    "kind": INVALID_BODY,
    "monthKey": "monthKey must be YYYY-MM",
    "storageId": "storageId is required",
    "fileName": "fileName is required",
    "fileType": "fileType must be 'pdf' or 'csv'",
    "csvContent": CSV_CONTENT_REQUIRED,
}


# ---- Request bodies ------------------------------------------------------------


class UploadUrlBody(BaseModel):
    kind: Literal["invoice", "statement"]


class InvoiceUploadBody(BaseModel):
    month_key: str = Field(alias="monthKey", pattern=MONTH_KEY_PATTERN.pattern)
    storage_id: str = Field(alias="storageId", max_length=MAX_STORAGE_ID_LENGTH)
    file_name: str = Field(alias="fileName", max_length=MAX_FILE_NAME_LENGTH)

    @field_validator("storage_id", "file_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class StatementUploadBody(InvoiceUploadBody):
    file_type: Literal["pdf", "csv"] = Field(alias="fileType")
    csv_content: str | None = Field(
        default=None, alias="csvContent", max_length=MAX_CSV_CONTENT_LENGTH
    )

    @model_validator(mode="after")
    def _csv_needs_content(self) -> StatementUploadBody:
        if self.file_type == "csv" and not (self.csv_content or "").strip():
            raise ValueError(CSV_CONTENT_REQUIRED)
        return self


def validation_message(exc: ValidationError) -> str:
    """Client-facing message for the first error of a failed body validation."""

    first = exc.errors()[0]
    loc = first.get("loc") or ()
    if loc:
        return _FIELD_MESSAGES.get(str(loc[0]), INVALID_BODY)
    cause = (first.get("ctx") or {}).get("error")
    return str(cause) if cause else INVALID_BODY


# ---- Requests ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class HeadlessRequest:
    method: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | str | None = None

    def header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def json(self) -> Any | None:
        if self.body is None:
            return None
        try:
            return json.loads(self.body)
        except (TypeError, ValueError):
            return None


@dataclass(frozen=True, slots=True)
class HeadlessResponse:
    status: int
    payload: dict[str, Any]

    @property
    def body(self) -> str:
        return json.dumps(self.payload)


def _error(status: int, message: str) -> HeadlessResponse:
    return HeadlessResponse(status, {"error": message})


@dataclass(slots=True)
class HeadlessApi:
    """Binds the handlers to their collaborators."""

    api_keys: ApiKeyStore
    documents: DocumentStore
    month_service_for: Callable[[str], MonthService]
    pepper: str | None = None

    def _authenticate(self, request: HeadlessRequest) -> str | HeadlessResponse:
        """Return the caller's user id, or the 401/403 response to send."""

        token = extract_bearer_token(request.header("authorization"))
        if not token or not token.startswith(API_KEY_PREFIX):
            return _error(401, "Unauthorized")
        key = self.api_keys.get_by_hash(compute_api_key_hash(token, pepper=self.pepper))
        if key is None or key.revoked_at is not None:
            return _error(401, "Unauthorized")
        if UPLOAD_WRITE_SCOPE not in key.scopes:
            return _error(403, "Forbidden")
        self.api_keys.touch(key.key_id)
        return key.user_id

    def _guard(self, request: HeadlessRequest) -> str | HeadlessResponse:
        if request.method.upper() != "POST":
            return _error(405, "Method not allowed")
        return self._authenticate(request)

    def create_upload_url(self, request: HeadlessRequest) -> HeadlessResponse:
        auth = self._guard(request)
        if isinstance(auth, HeadlessResponse):
            return auth
        try:
            UploadUrlBody.model_validate(request.json())
        except ValidationError:
            return _error(400, INVALID_BODY)
        return HeadlessResponse(200, {"uploadUrl": self.documents.generate_upload_url()})

    def register_invoice(self, request: HeadlessRequest) -> HeadlessResponse:
        auth = self._guard(request)
        if isinstance(auth, HeadlessResponse):
            return auth
        try:
            body = InvoiceUploadBody.model_validate(request.json())
        except ValidationError as e:
            return _error(400, validation_message(e))

        try:
            self.month_service_for(auth).add_invoice(
                body.month_key, body.storage_id, body.file_name
            )
        except Exception as e:  # noqa: BLE001 - any registration failure is the client's 400
            _logger.warning("invoice registration failed for user %s: %s", auth, e)
            return _error(400, str(e) or "Failed to register invoice")
        _logger.info("registered invoice via API for user %s", auth)
        return HeadlessResponse(201, {"ok": True})

    def register_statement(self, request: HeadlessRequest) -> HeadlessResponse:
        auth = self._guard(request)
        if isinstance(auth, HeadlessResponse):
            return auth
        try:
            body = StatementUploadBody.model_validate(request.json())
        except ValidationError as e:
            return _error(400, validation_message(e))

        try:
            self.month_service_for(auth).add_statement(
                body.month_key,
                body.storage_id,
                body.file_name,
                body.file_type,
                body.csv_content,
            )
        except Exception as e:  # noqa: BLE001 - any registration failure is the client's 400
            _logger.warning("statement registration failed for user %s: %s", auth, e)
            return _error(400, str(e) or "Failed to register statement")
        _logger.info("registered %s statement via API for user %s", body.file_type, auth)
        return HeadlessResponse(201, {"ok": True})


__all__ = [
    "HeadlessApi",
    "HeadlessRequest",
    "HeadlessResponse",
    "InvoiceUploadBody",
    "StatementUploadBody",
    "UploadUrlBody",
    "validation_message",
]
