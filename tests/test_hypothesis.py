"""Property-based tests for request encoding and response framing."""

import json

from hypothesis import given, settings
from hypothesis import strategies as st

from scb_gateway.transport.http import (
    OutboundRequest,
    decode_chunked,
    encode_request,
    parse_response,
    split_response,
)

json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=8), children, max_size=4),
    max_leaves=10,
).filter(lambda v: v is not None)


def _frame(chunks):
    return b"".join(f"{len(c):x}\r\n".encode() + c + b"\r\n" for c in chunks) + b"0\r\n\r\n"


@given(st.lists(st.binary(min_size=1, max_size=64), max_size=10))
def test_chunked_decode_concatenates_chunks(chunks):
    assert decode_chunked(_frame(chunks)) == b"".join(chunks)


@given(st.lists(st.binary(min_size=1, max_size=64), max_size=10))
def test_chunked_response_body(chunks):
    raw = b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n" + _frame(chunks)

    response = parse_response(raw)

    assert response.chunked
    assert response.body == b"".join(chunks)


@settings(max_examples=50)
@given(json_values)
def test_content_length_is_utf8_byte_length(value):
    raw = encode_request(OutboundRequest.with_json("POST", "/api", value), "registry.test")

    head, body = raw.split(b"\r\n\r\n", 1)

    assert f"Content-Length: {len(body)}".encode() in head.split(b"\r\n")
    assert json.loads(body.decode("utf-8")) == value


@given(st.text(max_size=40))
def test_text_body_round_trips(text):
    raw = encode_request(OutboundRequest.with_json("POST", "/api", {"q": text}), "h")
    body = raw.split(b"\r\n\r\n", 1)[1]
    assert json.loads(body)["q"] == text


@given(st.binary(max_size=200))
def test_split_keeps_body_after_first_separator(body):
    raw = b"HTTP/1.1 200 OK\r\nX-A: 1\r\n\r\n" + body

    response = split_response(raw)

    assert response.status_line == "HTTP/1.1 200 OK"
    assert response.body == body
    assert response.separator_found
