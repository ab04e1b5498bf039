"""Inbound lookup request and outbound result envelope."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .operations import DEFAULT_OPERATION, Operation, parse_operation


class VariableFilter(BaseModel):
    """Filter on one registry variable."""

    model_config = ConfigDict(populate_by_name=True)

    variable: str = Field(alias="Variabel")
    operator: str = Field(alias="Operator")
    value1: str = Field(alias="Varde1")
    value2: str | None = Field(default=None, alias="Varde2")


class CategoryFilter(BaseModel):
    """Filter on one registry category by code list."""

    model_config = ConfigDict(populate_by_name=True)

    category: str = Field(alias="Kategori")
    codes: list[str] = Field(alias="Kod")
    industry_level: int | None = Field(default=None, alias="Branschniva")


class LookupRequest(BaseModel):
    """Inbound lookup request. Every field is optional.

    An empty or unrecognised ``endpoint`` runs ``fetch``, like an absent one.
    """

    organisationsnummer: str | None = None
    endpoint: Operation | None = None
    arbetsstalleStatus: str | None = None
    variabler: list[VariableFilter] | None = None
    kategorier: list[CategoryFilter] | None = None

    @field_validator("endpoint", mode="before")
    @classmethod
    def unknown_endpoint_is_fetch(cls, value: Any) -> Any:
        if value is None:
            return None
        return parse_operation(value) or DEFAULT_OPERATION

    def variable_filters(self) -> list[dict[str, Any]] | None:
        """Filters in the registry's wire shape, or ``None`` if not given."""
        if self.variabler is None:
            return None
        return [f.model_dump(by_alias=True, exclude_none=True) for f in self.variabler]

    def category_filters(self) -> list[dict[str, Any]] | None:
        """Category filters in the registry's wire shape, or ``None`` if not given."""
        if self.kategorier is None:
            return None
        return [f.model_dump(by_alias=True, exclude_none=True) for f in self.kategorier]


class ResultEnvelope(BaseModel):
    """JSON returned for every lookup call, success or failure.

    Attributes:
        success: Whether the lookup completed.
        count: Workplace count, for ``count`` lookups that return a number.
        data: Parsed registry response.
        error: Failure message.
        logs: Diagnostic trace of the call.
    """

    success: bool
    count: int | None = None
    data: Any = None
    error: str | None = None
    logs: list[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, data: Any, logs: list[str], count: int | None = None) -> ResultEnvelope:
        return cls(success=True, data=data, count=count, logs=list(logs))

    @classmethod
    def failure(cls, error: str, logs: list[str]) -> ResultEnvelope:
        return cls(success=False, error=error, logs=list(logs))

    def to_payload(self) -> dict[str, Any]:
        """Serializable dict; absent optional fields are omitted.

        ``data`` is always present on success, even when it is ``null``.
        """
        payload = self.model_dump(exclude_none=True)
        if self.success:
            payload["data"] = self.data
        return payload
