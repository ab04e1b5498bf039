"""Tests for registry operations, request models, and dispatch."""

import json

import pytest

from scb_gateway.registry.client import RegistryClient
from scb_gateway.registry.models import LookupRequest, ResultEnvelope
from scb_gateway.registry.operations import (
    DEFAULT_OPERATION,
    ROUTES,
    Operation,
    build_filter_body,
    default_variable_filters,
    parse_operation,
)
from scb_gateway.testing.mocks import StubSocketClient, http_response, mock_credential
from scb_gateway.trace import Trace
from scb_gateway.transport.http import RegistryHttpClient

BASE_URL = "https://privateapi.scb.se/nv0101/v1/sokpavar"


def _client(stub, **kwargs):
    return RegistryClient(RegistryHttpClient(BASE_URL, socket_client=stub), **kwargs)


def _request_line(stub):
    return stub.written[-1].split(b"\r\n", 1)[0].decode()


# ---------------------------------------------------------------------------
# Operation table
# ---------------------------------------------------------------------------


class TestRoutes:
    def test_every_operation_routed(self):
        assert set(ROUTES) == set(Operation)

    @pytest.mark.parametrize(
        "operation,method,path",
        [
            (Operation.CATEGORIES, "GET", "/api/Ae/KoptaKategorier"),
            (Operation.VARIABLES, "GET", "/api/Ae/KoptaVariabler"),
            (Operation.COUNT, "POST", "/api/Ae/RaknaArbetsstallen"),
            (Operation.FETCH, "POST", "/api/Ae/HamtaArbetsstallen"),
        ],
    )
    def test_method_and_path(self, operation, method, path):
        route = ROUTES[operation]
        assert (route.method, route.path) == (method, path)
        assert route.filtered == (method == "POST")

    def test_fetch_is_default(self):
        assert DEFAULT_OPERATION is Operation.FETCH


class TestBuildFilterBody:
    def test_defaults(self):
        body = build_filter_body("5560743089")

        assert body == {
            "Arbetsställestatus": "1",
            "variabler": [
                {
                    "Variabel": "OrgNr (10 siffror)",
                    "Operator": "ArLikaMed",
                    "Varde1": "5560743089",
                    "Varde2": "",
                }
            ],
            "Kategorier": [],
        }

    def test_empty_status_falls_back(self):
        assert build_filter_body("1", status="")["Arbetsställestatus"] == "1"

    def test_explicit_status(self):
        assert build_filter_body("1", status="0")["Arbetsställestatus"] == "0"

    def test_explicit_filters_replace_default(self):
        variables = [{"Variabel": "Postort", "Operator": "ArLikaMed", "Varde1": "UMEÅ"}]
        categories = [{"Kategori": "Bransch", "Kod": ["62010"], "Branschniva": 5}]

        body = build_filter_body("5560743089", variables=variables, categories=categories)

        assert body["variabler"] == variables
        assert body["Kategorier"] == categories

    def test_explicit_empty_list_kept(self):
        assert build_filter_body("1", variables=[])["variabler"] == []

    def test_default_variable_filter(self):
        assert default_variable_filters("123") == [
            {"Variabel": "OrgNr (10 siffror)", "Operator": "ArLikaMed", "Varde1": "123", "Varde2": ""}
        ]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestLookupRequest:
    def test_all_optional(self):
        request = LookupRequest()
        assert request.endpoint is None
        assert request.variable_filters() is None
        assert request.category_filters() is None

    def test_wire_shape_preserved(self):
        request = LookupRequest.model_validate(
            {
                "variabler": [{"Variabel": "OrgNr (10 siffror)", "Operator": "ArLikaMed", "Varde1": "1"}],
                "kategorier": [{"Kategori": "Bransch", "Kod": ["62010", "62020"]}],
            }
        )

        assert request.variable_filters() == [
            {"Variabel": "OrgNr (10 siffror)", "Operator": "ArLikaMed", "Varde1": "1"}
        ]
        assert request.category_filters() == [{"Kategori": "Bransch", "Kod": ["62010", "62020"]}]

    @pytest.mark.parametrize("endpoint", ["delete", "", "COUNT", 7])
    def test_unknown_endpoint_falls_back_to_fetch(self, endpoint):
        assert LookupRequest.model_validate({"endpoint": endpoint}).endpoint is Operation.FETCH

    def test_null_endpoint_left_unset(self):
        assert LookupRequest.model_validate({"endpoint": None}).endpoint is None

    def test_parse_operation(self):
        assert parse_operation("variables") is Operation.VARIABLES
        assert parse_operation(Operation.COUNT) is Operation.COUNT
        assert parse_operation("Fetch") is None
        assert parse_operation(None) is None

    def test_endpoint_parsed(self):
        assert LookupRequest.model_validate({"endpoint": "count"}).endpoint is Operation.COUNT


class TestResultEnvelope:
    def test_success_payload(self):
        payload = ResultEnvelope.ok({"a": 1}, ["step"]).to_payload()
        assert payload == {"success": True, "data": {"a": 1}, "logs": ["step"]}

    def test_success_with_null_data(self):
        assert ResultEnvelope.ok(None, []).to_payload() == {"success": True, "data": None, "logs": []}

    def test_count_included(self):
        assert ResultEnvelope.ok(7, [], count=7).to_payload()["count"] == 7

    def test_failure_payload(self):
        payload = ResultEnvelope.failure("boom", ["ERROR: boom"]).to_payload()
        assert payload == {"success": False, "error": "boom", "logs": ["ERROR: boom"]}

    def test_logs_copied(self):
        logs = ["a"]
        envelope = ResultEnvelope.ok(None, logs)
        logs.append("b")
        assert envelope.logs == ["a"]


# ---------------------------------------------------------------------------
# RegistryClient dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_default_operation_is_fetch(self):
        stub = StubSocketClient(http_response([]))
        _client(stub).dispatch(LookupRequest(), mock_credential(), Trace())

        assert _request_line(stub) == "POST /nv0101/v1/sokpavar/api/Ae/HamtaArbetsstallen HTTP/1.1"

    def test_fetch_default_filter(self):
        stub = StubSocketClient(http_response([]))
        request = LookupRequest(organisationsnummer="5560743089")

        _client(stub).dispatch(request, mock_credential(), Trace())

        body = stub.last_body
        assert body["variabler"] == [
            {
                "Variabel": "OrgNr (10 siffror)",
                "Operator": "ArLikaMed",
                "Varde1": "5560743089",
                "Varde2": "",
            }
        ]
        assert body["Kategorier"] == []
        assert body["Arbetsställestatus"] == "1"

    def test_configured_default_organisation(self):
        stub = StubSocketClient(http_response([]))
        _client(stub, default_organisationsnummer="2021005489").dispatch(
            LookupRequest(), mock_credential(), Trace()
        )
        assert stub.last_body["variabler"][0]["Varde1"] == "2021005489"

    def test_count(self):
        stub = StubSocketClient(http_response(12))
        result = _client(stub).count("5560743089", mock_credential(), Trace())

        assert result == 12
        assert _request_line(stub).startswith("POST /nv0101/v1/sokpavar/api/Ae/RaknaArbetsstallen ")

    def test_fetch(self):
        stub = StubSocketClient(http_response([{"Namn": "Volvo"}], chunk_size=8))
        result = _client(stub).fetch("5560743089", mock_credential(), Trace())
        assert result == [{"Namn": "Volvo"}]

    @pytest.mark.parametrize(
        "method_name,path",
        [("categories", "/api/Ae/KoptaKategorier"), ("variables", "/api/Ae/KoptaVariabler")],
    )
    def test_get_operations_send_no_body(self, method_name, path):
        stub = StubSocketClient(http_response([{"Id": 1}]))
        getattr(_client(stub), method_name)(mock_credential(), Trace())

        raw = stub.written[-1]
        assert _request_line(stub) == f"GET /nv0101/v1/sokpavar{path} HTTP/1.1"
        assert raw.endswith(b"\r\n\r\n")
        assert b"Content-Length" not in raw

    def test_explicit_filters_forwarded(self):
        stub = StubSocketClient(http_response(0))
        request = LookupRequest.model_validate(
            {
                "endpoint": "count",
                "arbetsstalleStatus": "0",
                "variabler": [{"Variabel": "Kommun", "Operator": "ArLikaMed", "Varde1": "2480"}],
                "kategorier": [{"Kategori": "Bransch", "Kod": ["47111"], "Branschniva": 5}],
            }
        )

        _client(stub).dispatch(request, mock_credential(), Trace())

        assert stub.last_body == {
            "Arbetsställestatus": "0",
            "variabler": [{"Variabel": "Kommun", "Operator": "ArLikaMed", "Varde1": "2480"}],
            "Kategorier": [{"Kategori": "Bransch", "Kod": ["47111"], "Branschniva": 5}],
        }

    def test_trace_names_endpoint(self):
        stub = StubSocketClient(http_response([]))
        trace = Trace()
        _client(stub).dispatch(LookupRequest(endpoint=Operation.VARIABLES), mock_credential(), trace)
        assert "Endpoint: variables, OrgNr: 5560743089" in trace.entries

    def test_content_length_matches_non_ascii_body(self):
        stub = StubSocketClient(http_response([]))
        _client(stub).dispatch(LookupRequest(), mock_credential(), Trace())

        raw = stub.written[-1]
        head, body = raw.split(b"\r\n\r\n", 1)
        assert f"Content-Length: {len(body)}".encode() in head
        assert len(body) == len(body.decode("utf-8")) + 1  # "ä" is two bytes
        assert json.loads(body)["Arbetsställestatus"] == "1"
