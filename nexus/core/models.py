"""Domain models for Nexus connect params.

Two kinds of models live here:
- internal value types (frozen dataclasses) passed between the fetcher, cache and evaluator
- the wire schema for the controller's `getConnectParams` response (pydantic)

Design note:
- The wire payload tolerates extra keys; the three capability fields are mandatory.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator


@dataclass(frozen=True)
class PolicyRecord:
    """Access rights granted to one extension at fetch time."""

    is_guest: bool
    guest_to_admin_messaging_enabled: bool
    guest_to_guest_calling_enabled: bool


@dataclass(frozen=True)
class CacheEntry:
    record: PolicyRecord
    fetched_at: float  # monotonic seconds


@dataclass(frozen=True)
class Account:
    """A locally registered calling account (identity address = extension@domain)."""

    extension_id: str
    domain: str  # may carry a ":port" suffix


class ConnectParamsPayload(BaseModel):
    """Response body of `POST /getConnectParams`."""

    model_config = ConfigDict(extra="ignore")

    is_guest_extension: StrictBool = Field(...)
    is_guest_to_admin_messaging_enabled: StrictBool = Field(...)
    is_guest_to_guest_calling_enabled: StrictBool = Field(...)

    @field_validator(
        "is_guest_extension",
        "is_guest_to_admin_messaging_enabled",
        "is_guest_to_guest_calling_enabled",
        mode="before",
    )
    @classmethod
    def _string_bools(cls, v: Any) -> Any:
        # Controllers sometimes serialize booleans as "true"/"false".
        if isinstance(v, str) and v.lower() in ("true", "false"):
            return v.lower() == "true"
        return v

    def to_record(self) -> PolicyRecord:
        return PolicyRecord(
            is_guest=self.is_guest_extension,
            guest_to_admin_messaging_enabled=self.is_guest_to_admin_messaging_enabled,
            guest_to_guest_calling_enabled=self.is_guest_to_guest_calling_enabled,
        )


# ---------------------------------------------------------------------------
# Fetch failures (returned as values, never raised)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FetchFailure:
    extension_id: str

    @property
    def reason(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class NoRoute(FetchFailure):
    """Neither a matching local account nor a default account exists."""


@dataclass(frozen=True)
class HttpError(FetchFailure):
    status: int = 0


@dataclass(frozen=True)
class EmptyBody(FetchFailure):
    pass


@dataclass(frozen=True)
class ParseError(FetchFailure):
    message: str = ""


@dataclass(frozen=True)
class MissingField(FetchFailure):
    name: str = ""


@dataclass(frozen=True)
class TransportError(FetchFailure):
    message: str = ""


FetchResult = Union[PolicyRecord, FetchFailure]
