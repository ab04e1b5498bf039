"""Registry operations and the request bodies they send."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

DEFAULT_ORGANISATIONSNUMMER = "5560743089"
DEFAULT_WORKPLACE_STATUS = "1"
ORGNR_VARIABLE = "OrgNr (10 siffror)"
EQUALS_OPERATOR = "ArLikaMed"


class Operation(str, Enum):
    """Logical lookups the gateway can perform.

    Attributes:
        COUNT: Count workplaces matching the filters.
        FETCH: Fetch workplaces matching the filters. The default.
        CATEGORIES: List the categories purchased by the certificate holder.
        VARIABLES: List the variables purchased by the certificate holder.
    """

    COUNT = "count"
    FETCH = "fetch"
    CATEGORIES = "categories"
    VARIABLES = "variables"


@dataclass(frozen=True)
class OperationRoute:
    """HTTP method and API path bound to an operation.

    Attributes:
        method: ``GET`` or ``POST``.
        path: Path below the registry base URL.
        filtered: Whether the request carries a workplace filter body.
    """

    method: str
    path: str
    filtered: bool = False


ROUTES: dict[Operation, OperationRoute] = {
    Operation.CATEGORIES: OperationRoute("GET", "/api/Ae/KoptaKategorier"),
    Operation.VARIABLES: OperationRoute("GET", "/api/Ae/KoptaVariabler"),
    Operation.COUNT: OperationRoute("POST", "/api/Ae/RaknaArbetsstallen", filtered=True),
    Operation.FETCH: OperationRoute("POST", "/api/Ae/HamtaArbetsstallen", filtered=True),
}

DEFAULT_OPERATION = Operation.FETCH


def parse_operation(value: Any) -> Operation | None:
    """Return the operation named by ``value``, or ``None`` if it names none.

    Matching is exact: ``"COUNT"`` and ``""`` name no operation.
    """
    if isinstance(value, Operation):
        return value
    if isinstance(value, str):
        try:
            return Operation(value)
        except ValueError:
            return None
    return None


def default_variable_filters(organisationsnummer: str) -> list[dict[str, str]]:
    """Single filter matching one organisation number exactly."""
    return [
        {
            "Variabel": ORGNR_VARIABLE,
            "Operator": EQUALS_OPERATOR,
            "Varde1": organisationsnummer,
            "Varde2": "",
        }
    ]


def build_filter_body(
    organisationsnummer: str,
    status: str | None = None,
    variables: list[dict[str, Any]] | None = None,
    categories: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build the workplace filter body shared by count and fetch.

    ``None`` filters take the defaults: one organisation-number equality
    filter and no categories. An explicit empty list is sent as given.
    An empty ``status`` falls back to ``"1"`` (active workplaces).
    """
    return {
        "Arbetsställestatus": status or DEFAULT_WORKPLACE_STATUS,
        "variabler": (
            variables if variables is not None else default_variable_filters(organisationsnummer)
        ),
        "Kategorier": categories if categories is not None else [],
    }
