"""
Inference client for the hosted table-question-answering model.

Provides a client for sending a table and a query to the remote endpoint,
waiting out model warm-up when the service asks for it.
"""

import json
import time
from typing import Any, Callable, Dict, Optional

import requests
from pydantic import ValidationError

from table_qa_bot.config import settings
from table_qa_bot.llm.retry import RetryState, WarmupRetry
from table_qa_bot.llm.schemas import TableAnswer, TableQuestion
from table_qa_bot.utils.exceptions import (
    ConfigurationError,
    InferenceAuthError,
    InferenceConnectionError,
    InferenceProtocolError,
    InferenceTimeoutError,
    RetriesExhaustedError,
)
from table_qa_bot.utils.logger import logger

AUTH_FAILURE_STATUSES = {401, 403}


def build_request_body(payload: TableQuestion) -> bytes:
    """Serialize a request payload to the JSON bytes sent on the wire."""
    return payload.model_dump_json().encode("utf-8")


def build_headers(credential: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {credential}",
        "Content-Type": "application/json",
    }


def parse_answer(body: str) -> TableAnswer:
    """
    Decode a successful response body.

    Raises:
        InferenceProtocolError: If the body is not JSON or has the wrong shape
    """
    try:
        data = json.loads(body)
    except ValueError as e:
        raise InferenceProtocolError("Response body is not valid JSON", details=str(e))

    if not isinstance(data, dict):
        raise InferenceProtocolError(
            "Unexpected response shape",
            details=f"expected a JSON object, got {type(data).__name__}"
        )

    try:
        return TableAnswer.model_validate(data)
    except ValidationError as e:
        raise InferenceProtocolError("Unexpected response shape", details=str(e))


class InferenceClient:
    """
    Client for the hosted table-question-answering endpoint.

    The transport (``session``) and the wait (``sleep``) are injectable so the
    retry behaviour can be exercised without a network.
    """

    def __init__(
        self,
        api_token: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
        session: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        """
        Initialize inference client.

        Args:
            api_token: Bearer token (default from config)
            endpoint_url: Model endpoint URL (default from config)
            max_retries: Total attempts allowed while the model warms up (default from config)
            timeout: Per-request timeout in seconds (default from config)
            session: Object with a requests-compatible ``post`` method
            sleep: Callable used to wait between attempts
        """
        self._api_token = api_token or settings.inference.api_token
        self._endpoint_url = endpoint_url or settings.inference.endpoint_url
        self._max_retries = max_retries if max_retries is not None else settings.inference.max_retries
        if self._max_retries < 1:
            raise ConfigurationError(
                f"max_retries must be at least 1, got {self._max_retries}",
                details="Set INFERENCE_MAX_RETRIES or --max-retries to a positive number"
            )
        self._timeout = timeout or settings.inference.timeout
        self._session = session or requests.Session()
        self._sleep = sleep

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def _post(self, body: bytes, headers: Dict[str, str]) -> requests.Response:
        try:
            return self._session.post(
                self._endpoint_url,
                data=body,
                headers=headers,
                timeout=self._timeout
            )
        except requests.Timeout:
            raise InferenceTimeoutError(
                f"Request timed out after {self._timeout}s",
                details="Consider increasing INFERENCE_TIMEOUT"
            )
        except requests.RequestException as e:
            raise InferenceConnectionError("Failed to reach inference endpoint", details=str(e))

    def query(self, payload: TableQuestion, credential: Optional[str] = None) -> TableAnswer:
        """
        Ask the model a question about a table.

        Args:
            payload: Table and query to send
            credential: Bearer token; the configured token is used when omitted

        Returns:
            Decoded model answer

        Raises:
            ConfigurationError: If no token is available
            InferenceAuthError: If the endpoint rejects the token
            InferenceTimeoutError: If the request times out
            RetriesExhaustedError: If the model is still loading after every attempt
            InferenceConnectionError: On transport failure or any other status
            InferenceProtocolError: If a 200 body has the wrong shape
        """
        token = credential or self._api_token
        if not token:
            raise ConfigurationError(
                "No API token configured",
                details="Set HUGGINGFACE_TOKEN in the environment or .env file"
            )

        body = build_request_body(payload)
        headers = build_headers(token)
        retry = WarmupRetry(self._max_retries)
        start_time = time.perf_counter()

        while True:
            response = self._post(body, headers)
            state = retry.record_response(response.status_code, response.text)

            if state is RetryState.WAITING:
                logger.info(
                    f"Model is currently loading, retrying in {retry.wait_seconds:.1f} seconds "
                    f"(attempt {retry.attempts}/{retry.max_attempts})"
                )
                self._sleep(retry.wait_seconds)
                retry.resume()
                continue
            break

        if state is RetryState.SUCCEEDED:
            answer = parse_answer(response.text)
            logger.info(f"Answer received in {time.perf_counter() - start_time:.2f}s")
            return answer

        if retry.exhausted:
            raise RetriesExhaustedError(
                "max retries reached, failed to connect to AI model",
                details=f"model still loading after {retry.attempts} attempts",
                status_code=retry.last_status,
                body=retry.last_body
            )

        error_class = (
            InferenceAuthError if retry.last_status in AUTH_FAILURE_STATUSES
            else InferenceConnectionError
        )
        raise error_class(
            f"failed to connect to AI model, status: {retry.last_status}",
            details=retry.last_body,
            status_code=retry.last_status,
            body=retry.last_body
        )
