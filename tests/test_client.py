import json

import pytest
import requests

from table_qa_bot.llm.client import InferenceClient, build_request_body, parse_answer
from table_qa_bot.llm.schemas import TableAnswer, TableQuestion
from table_qa_bot.utils.exceptions import (
    ConfigurationError,
    InferenceAuthError,
    InferenceConnectionError,
    InferenceProtocolError,
    InferenceTimeoutError,
    RetriesExhaustedError,
)

ENDPOINT = "https://example.test/models/tapas"

ANSWER_BODY = json.dumps({
    "answer": "SUM > 10, 20",
    "coordinates": [[0, 1], [1, 1]],
    "cells": ["10", "20"],
    "aggregator": "SUM",
})

LOADING_BODY = json.dumps({"error": "Model is currently loading", "estimated_time": 0.01})


class FakeResponse:
    def __init__(self, status_code, text):
        self.status_code = status_code
        self.text = text


class FakeSession:
    """Replays queued responses (or raises queued exceptions) and records each post."""

    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)
        self.calls = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def payload():
    return TableQuestion(table={"city": ["A", "B"], "kwh": ["10", "20"]}, query="total kwh?")


def make_client(session, sleeps=None, **kwargs):
    sleeps = [] if sleeps is None else sleeps
    return InferenceClient(
        api_token="hf_test",
        endpoint_url=ENDPOINT,
        max_retries=kwargs.pop("max_retries", 10),
        timeout=5,
        session=session,
        sleep=sleeps.append,
        **kwargs,
    )


def test_success_returns_decoded_answer(payload):
    session = FakeSession(FakeResponse(200, ANSWER_BODY))
    answer = make_client(session).query(payload)
    assert answer == TableAnswer(
        answer="SUM > 10, 20",
        coordinates=[(0, 1), (1, 1)],
        cells=["10", "20"],
        aggregator="SUM",
    )
    assert len(session.calls) == 1


def test_request_carries_headers_and_body(payload):
    session = FakeSession(FakeResponse(200, ANSWER_BODY))
    make_client(session).query(payload)
    call = session.calls[0]
    assert call["url"] == ENDPOINT
    assert call["headers"]["Authorization"] == "Bearer hf_test"
    assert call["headers"]["Content-Type"] == "application/json"
    assert call["timeout"] == 5
    assert json.loads(call["data"]) == {
        "table": {"city": ["A", "B"], "kwh": ["10", "20"]},
        "query": "total kwh?",
    }


def test_explicit_credential_overrides_configured_token(payload):
    session = FakeSession(FakeResponse(200, ANSWER_BODY))
    make_client(session).query(payload, credential="other")
    assert session.calls[0]["headers"]["Authorization"] == "Bearer other"


def test_missing_token_raises_configuration_error(payload, monkeypatch):
    from table_qa_bot import config

    monkeypatch.setattr(config.settings, "inference", config.InferenceConfig(api_token=None))
    session = FakeSession(FakeResponse(200, ANSWER_BODY))
    client = InferenceClient(endpoint_url=ENDPOINT, session=session, sleep=lambda s: None)
    with pytest.raises(ConfigurationError):
        client.query(payload)
    assert session.calls == []


def test_warm_up_once_then_success(payload):
    sleeps = []
    session = FakeSession(FakeResponse(503, LOADING_BODY), FakeResponse(200, ANSWER_BODY))
    answer = make_client(session, sleeps).query(payload)
    assert answer.aggregator == "SUM"
    assert len(session.calls) == 2
    assert sleeps == [0.01]
    assert session.calls[0]["data"] == session.calls[1]["data"]


def test_always_warming_up_exhausts_after_ten_attempts(payload):
    sleeps = []
    session = FakeSession(FakeResponse(503, LOADING_BODY))
    with pytest.raises(RetriesExhaustedError) as exc:
        make_client(session, sleeps).query(payload)
    assert "max retries" in str(exc.value)
    assert isinstance(exc.value, InferenceConnectionError)
    assert exc.value.status_code == 503
    assert len(session.calls) == 10
    assert len(sleeps) == 9


def test_retry_budget_is_configurable(payload):
    session = FakeSession(FakeResponse(503, LOADING_BODY))
    with pytest.raises(RetriesExhaustedError):
        make_client(session, max_retries=3).query(payload)
    assert len(session.calls) == 3


def test_forbidden_fails_without_retry(payload):
    sleeps = []
    session = FakeSession(FakeResponse(403, '{"error": "forbidden"}'))
    with pytest.raises(InferenceConnectionError) as exc:
        make_client(session, sleeps).query(payload)
    assert isinstance(exc.value, InferenceAuthError)
    assert exc.value.status_code == 403
    assert exc.value.body == '{"error": "forbidden"}'
    assert len(session.calls) == 1
    assert sleeps == []


def test_server_error_is_terminal(payload):
    session = FakeSession(FakeResponse(500, "boom"))
    with pytest.raises(InferenceConnectionError) as exc:
        make_client(session).query(payload)
    assert not isinstance(exc.value, InferenceAuthError)
    assert "500" in str(exc.value)
    assert "boom" in str(exc.value)
    assert len(session.calls) == 1


def test_warming_up_without_estimate_is_terminal(payload):
    session = FakeSession(FakeResponse(503, "Service Unavailable"), FakeResponse(200, ANSWER_BODY))
    with pytest.raises(InferenceConnectionError) as exc:
        make_client(session).query(payload)
    assert not isinstance(exc.value, RetriesExhaustedError)
    assert len(session.calls) == 1


def test_transport_failure_is_not_retried(payload):
    session = FakeSession(requests.ConnectionError("connection refused"))
    with pytest.raises(InferenceConnectionError) as exc:
        make_client(session).query(payload)
    assert "connection refused" in str(exc.value)
    assert len(session.calls) == 1


def test_timeout_is_reported_as_timeout(payload):
    session = FakeSession(requests.Timeout("read timed out"))
    with pytest.raises(InferenceTimeoutError):
        make_client(session).query(payload)
    assert len(session.calls) == 1


def test_transport_failure_during_retry_aborts(payload):
    sleeps = []
    session = FakeSession(FakeResponse(503, LOADING_BODY), requests.ConnectionError("dns"))
    with pytest.raises(InferenceConnectionError):
        make_client(session, sleeps).query(payload)
    assert len(session.calls) == 2
    assert sleeps == [0.01]


@pytest.mark.parametrize(
    "body",
    [
        "not json",
        "[]",
        '{"coordinates": []}',
        '{"answer": "x", "coordinates": "nope"}',
        '{"answer": "x", "cells": [1, 2]}',
    ],
)
def test_malformed_success_body_raises_protocol_error(payload, body):
    session = FakeSession(FakeResponse(200, body))
    with pytest.raises(InferenceProtocolError):
        make_client(session).query(payload)


def test_parse_answer_fills_missing_optional_fields():
    answer = parse_answer('{"answer": "42"}')
    assert answer.coordinates == []
    assert answer.cells == []
    assert answer.aggregator == ""


def test_request_body_round_trip():
    table = {"city": ["A", "B"], "kwh": ["10", "20"]}
    body = build_request_body(TableQuestion(table=table, query="which city uses most?"))
    decoded = json.loads(body)
    assert decoded == {"table": table, "query": "which city uses most?"}
    assert TableQuestion.model_validate(decoded).table == table


def test_request_body_keeps_query_verbatim():
    table = {"a": ["1"]}
    body = build_request_body(TableQuestion(table=table, query="  total? "))
    assert json.loads(body) == {"table": table, "query": "  total? "}


def test_blank_query_is_rejected_by_payload_model():
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        TableQuestion(table={"a": ["1"]}, query="   ")


def test_negative_estimate_retries_without_waiting(payload):
    sleeps = []
    session = FakeSession(
        FakeResponse(503, json.dumps({"estimated_time": -1})),
        FakeResponse(200, ANSWER_BODY),
    )
    answer = make_client(session, sleeps).query(payload)
    assert answer.answer == "SUM > 10, 20"
    assert len(session.calls) == 2
    assert sleeps == [0.0]


@pytest.mark.parametrize("max_retries", [0, -1])
def test_non_positive_retry_budget_is_rejected(max_retries):
    with pytest.raises(ConfigurationError):
        InferenceClient(api_token="t", max_retries=max_retries, session=FakeSession(FakeResponse(200, "{}")))


def test_retry_budget_defaults_to_settings(monkeypatch):
    from table_qa_bot import config

    monkeypatch.setattr(config.settings, "inference", config.InferenceConfig(api_token="t", max_retries=4))
    client = InferenceClient(session=FakeSession(FakeResponse(200, "{}")))
    assert client.max_retries == 4
