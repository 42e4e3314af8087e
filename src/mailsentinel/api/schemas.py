"""Request/response models. JSON field names are camelCase on the wire."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mailsentinel.application.pagination import DEFAULT_LIMIT, DEFAULT_OFFSET
from mailsentinel.domain.entities.email_message import (
    AttachmentInfo,
    EmailAddress,
    NormalizedMessage,
    Page,
    SearchPage,
)
from mailsentinel.domain.models import Account, build_account


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Request Models
# ============================================================================


class AccountRequest(CamelModel):
    """Address and credential fields shared by every operation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    email: str | None = Field(None, description="Mailbox address; the domain selects the provider")
    password: str | None = Field(None, description="Account or app password")
    access_token: str | None = Field(None, description="OAuth access token (XOAUTH2)")
    auth_type: str | None = Field(None, description="password or oauth; inferred when omitted")
    folder: str | None = Field(None, description="Mailbox folder (default: INBOX)")

    def to_account(self, default_folder: str = "INBOX") -> Account:
        return build_account(
            self.email,
            self.password,
            self.access_token,
            self.auth_type,
            self.folder or default_folder,
        )


class FetchRequest(AccountRequest):
    limit: int = Field(DEFAULT_LIMIT, ge=1, description="Maximum messages to return")
    offset: int = Field(DEFAULT_OFFSET, ge=0, description="Messages to skip, counted from the newest")


class SearchRequest(AccountRequest):
    query: str | None = Field(None, description="Text matched against subject, body and sender")
    limit: int = Field(DEFAULT_LIMIT, ge=1, description="Maximum matches to return")


# ============================================================================
# Response Models
# ============================================================================


class HealthResponse(CamelModel):
    status: str
    message: str


class ConnectionTestResponse(CamelModel):
    success: bool
    provider: str
    auth_type: str


class CountResponse(CamelModel):
    count: int


class AddressOut(CamelModel):
    name: str = ""
    address: str = ""

    @classmethod
    def from_entity(cls, addr: EmailAddress) -> "AddressOut":
        return cls(name=addr.name, address=addr.address)


class AttachmentOut(CamelModel):
    filename: str
    content_type: str
    size: int

    @classmethod
    def from_entity(cls, att: AttachmentInfo) -> "AttachmentOut":
        return cls(filename=att.filename, content_type=att.content_type, size=att.size)


class MessageOut(CamelModel):
    """A projected message. Fields a variant omits are ``None`` and left out of the JSON."""

    id: str
    seq: int | None = None
    subject: str
    sender: AddressOut = Field(alias="from")
    to: list[AddressOut] | None = None
    date: str
    text: str
    html: str | None = None
    flags: list[str] | None = None
    is_read: bool
    attachments: list[AttachmentOut] | None = None

    @classmethod
    def from_entity(cls, msg: NormalizedMessage) -> "MessageOut":
        return cls(
            id=msg.id,
            seq=msg.seq,
            subject=msg.subject,
            sender=AddressOut.from_entity(msg.sender),
            to=[AddressOut.from_entity(a) for a in msg.to] if msg.to is not None else None,
            date=msg.date,
            text=msg.text,
            html=msg.html,
            flags=msg.flags,
            is_read=msg.is_read,
            attachments=(
                [AttachmentOut.from_entity(a) for a in msg.attachments]
                if msg.attachments is not None
                else None
            ),
        )


class PageResponse(CamelModel):
    emails: list[MessageOut]
    total_count: int
    has_more: bool

    @classmethod
    def from_entity(cls, page: Page) -> "PageResponse":
        return cls(
            emails=[MessageOut.from_entity(m) for m in page.emails],
            total_count=page.total_count,
            has_more=page.has_more,
        )


class SearchResponse(CamelModel):
    emails: list[MessageOut]
    total_count: int

    @classmethod
    def from_entity(cls, page: SearchPage) -> "SearchResponse":
        return cls(
            emails=[MessageOut.from_entity(m) for m in page.emails],
            total_count=page.total_count,
        )


class ErrorResponse(CamelModel):
    success: bool | None = None
    error: str
