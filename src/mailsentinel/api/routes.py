"""
API routes for the Mail Sentinel gateway.

Every POST route validates its body before any network attempt, then runs
the blocking IMAP work in a worker thread.
"""

from __future__ import annotations

import asyncio
from functools import lru_cache

from fastapi import APIRouter, Depends, Path
from fastapi.responses import JSONResponse

from mailsentinel.api.schemas import (
    AccountRequest,
    ConnectionTestResponse,
    CountResponse,
    ErrorResponse,
    FetchRequest,
    HealthResponse,
    MessageOut,
    PageResponse,
    SearchRequest,
    SearchResponse,
)
from mailsentinel.application.use_cases.mailbox import MailboxService
from mailsentinel.domain.errors import AuthenticationFailedError, InvalidRequestError
from mailsentinel.infrastructure import Settings, get_settings
from mailsentinel.infrastructure.email.imap.auth import ImapSessionFactory

router = APIRouter()


@lru_cache
def get_mailbox_service() -> MailboxService:
    """Shared stateless service; sessions are still opened per call."""
    settings = get_settings()
    return MailboxService(session_factory=ImapSessionFactory(timeout=settings.imap_timeout_seconds))


def _check_limit(limit: int, settings: Settings) -> None:
    if limit > settings.max_page_limit:
        raise InvalidRequestError(f"limit must be at most {settings.max_page_limit}")


# ============================================================================
# Health Endpoint
# ============================================================================


@router.get("/", response_model=HealthResponse, tags=["health"])
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(status="ok", message=settings.app_name)


# ============================================================================
# Mailbox Endpoints
# ============================================================================


@router.post(
    "/test",
    response_model=ConnectionTestResponse,
    responses={401: {"model": ErrorResponse}},
    tags=["mailbox"],
)
async def check_connection(
    request: AccountRequest,
    settings: Settings = Depends(get_settings),
    service: MailboxService = Depends(get_mailbox_service),
):
    """Authenticate against the provider and log straight out."""
    account = request.to_account(settings.default_folder)

    try:
        provider, auth_type = await asyncio.to_thread(service.test_connection, account)
    except AuthenticationFailedError as e:
        return JSONResponse(
            status_code=401,
            content={"success": False, "error": str(e) or "Authentication failed"},
        )

    return ConnectionTestResponse(success=True, provider=provider.value, auth_type=auth_type.value)


@router.post("/count", response_model=CountResponse, tags=["mailbox"])
async def count_messages(
    request: AccountRequest,
    settings: Settings = Depends(get_settings),
    service: MailboxService = Depends(get_mailbox_service),
) -> CountResponse:
    account = request.to_account(settings.default_folder)
    count = await asyncio.to_thread(service.count, account)
    return CountResponse(count=count)


@router.post(
    "/fetch",
    response_model=PageResponse,
    response_model_exclude_none=True,
    tags=["mailbox"],
)
async def fetch_messages(
    request: FetchRequest,
    settings: Settings = Depends(get_settings),
    service: MailboxService = Depends(get_mailbox_service),
) -> PageResponse:
    """A page of messages, newest first."""
    account = request.to_account(settings.default_folder)
    _check_limit(request.limit, settings)

    page = await asyncio.to_thread(service.fetch_page, account, request.offset, request.limit)
    return PageResponse.from_entity(page)


@router.post(
    "/message/{uid}",
    response_model=MessageOut,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
    tags=["mailbox"],
)
async def fetch_message(
    request: AccountRequest,
    uid: int = Path(..., ge=1, description="Message unique id"),
    settings: Settings = Depends(get_settings),
    service: MailboxService = Depends(get_mailbox_service),
) -> MessageOut:
    """One message with full bodies and attachment metadata."""
    account = request.to_account(settings.default_folder)

    message = await asyncio.to_thread(service.fetch_message, account, uid)
    return MessageOut.from_entity(message)


@router.post(
    "/search",
    response_model=SearchResponse,
    response_model_exclude_none=True,
    tags=["mailbox"],
)
async def search_messages(
    request: SearchRequest,
    settings: Settings = Depends(get_settings),
    service: MailboxService = Depends(get_mailbox_service),
) -> SearchResponse:
    """Most recent messages whose subject, body or sender contains the query."""
    if not request.query:
        raise InvalidRequestError("Email, password/accessToken, and query required")
    account = request.to_account(settings.default_folder)
    _check_limit(request.limit, settings)

    page = await asyncio.to_thread(service.search, account, request.query, request.limit)
    return SearchResponse.from_entity(page)
