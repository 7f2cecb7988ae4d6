#!/usr/bin/env python3
"""
Generation module for the e-commerce AI assistant.

This module sends composed requests to the inference endpoint and classifies
every way the call can fail. One invocation is exactly one HTTP request; retry
policy belongs to the caller.
"""

from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel

from ..schemas.io_models import ImageRequest, ModelRequest
from ..utils.logger import get_logger
from .config import Config
from .errors import EmptyResponseError, EndpointError, TransportError

logger = get_logger()


class InferenceSettings(BaseModel):
    """Endpoint configuration handed to the client at construction."""
    base_url: str
    image_url: str
    model: str
    api_key: Optional[str] = None
    timeout: float = 60.0

    @classmethod
    def from_config(cls, config=Config) -> "InferenceSettings":
        return cls(
            base_url=config.INFERENCE_BASE_URL,
            image_url=config.IMAGE_ENDPOINT_URL,
            model=config.INFERENCE_MODEL,
            api_key=config.INFERENCE_API_KEY,
            timeout=config.REQUEST_TIMEOUT,
        )


class GenerationClient:
    """Client for the chat-completions and image endpoints."""

    def __init__(self, settings: InferenceSettings, session: Optional[requests.Session] = None):
        """
        Initialize the generation client.

        Args:
            settings: Endpoint URLs, model name, API key and timeout
            session: Optional requests session (tests inject a mock here)
        """
        self.settings = settings
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    def _post(self, url: str, payload: Dict[str, Any]) -> requests.Response:
        try:
            return self.session.post(url, json=payload, headers=self._headers(), timeout=self.settings.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning("[INFERENCE] transport failure calling %s: %s", url, e)
            raise TransportError(f"could not reach inference endpoint: {e}") from e

    @staticmethod
    def _is_success(response: requests.Response) -> bool:
        return 200 <= response.status_code < 300

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Prefer the endpoint's own error envelope, fall back to the status text."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
                return error["message"]
            if isinstance(error, str) and error:
                return error
        return response.reason or f"HTTP {response.status_code}"

    def invoke(self, request: ModelRequest) -> str:
        """
        Send one chat-completions request and return the raw content string.

        Args:
            request: Composed model request

        Returns:
            Raw model output (free text or JSON-encoded object)

        Raises:
            TransportError: endpoint unreachable
            EndpointError: non-2xx status
            EmptyResponseError: 2xx without a content field
        """
        payload = request.to_payload()
        if request.structured_output:
            # the endpoint constrains the shape where it can; the answer is validated anyway
            payload["response_format"] = {"type": "json_object"}

        logger.info(
            "[INFERENCE] POST %s model=%s structured=%s",
            self.settings.base_url, request.model, bool(request.structured_output),
        )
        response = self._post(self.settings.base_url, payload)
        logger.info("[INFERENCE] endpoint answered HTTP %s", response.status_code)

        if not self._is_success(response):
            raise EndpointError(response.status_code, self._error_message(response))

        try:
            data = response.json()
        except ValueError as e:
            raise EmptyResponseError("endpoint returned a body that is not JSON") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise EmptyResponseError("endpoint response has no choices[0].message.content") from e

        if not isinstance(content, str):
            raise EmptyResponseError("endpoint response content is not text")

        logger.debug("[INFERENCE] received %d characters", len(content))
        return content

    def invoke_image(self, request: ImageRequest) -> str:
        """
        Send one image-synthesis request and return the image URL.

        Raises:
            TransportError: endpoint unreachable
            EndpointError: non-2xx status
            EmptyResponseError: 2xx without a url
        """
        logger.info("[INFERENCE] POST %s aspect_ratio=%s", self.settings.image_url, request.aspect_ratio)
        response = self._post(self.settings.image_url, request.to_payload())
        logger.info("[INFERENCE] image endpoint answered HTTP %s", response.status_code)

        if not self._is_success(response):
            raise EndpointError(response.status_code, response.reason or f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise EmptyResponseError("image endpoint returned a body that is not JSON") from e

        url = data.get("url") if isinstance(data, dict) else None
        if not isinstance(url, str) or not url.strip():
            raise EmptyResponseError("image endpoint response has no url")
        return url


def main():
    """Main function for trying the generation client against the configured endpoint."""
    from ..schemas.io_models import Message

    try:
        client = GenerationClient(InferenceSettings.from_config())
        print("Generation client initialized successfully")

        request = ModelRequest(
            model=client.settings.model,
            messages=[
                Message(role="system", content="You are a senior e-commerce operations strategist."),
                Message(role="user", content="Suggest one headline for a 27-inch 4K monitor."),
            ],
        )
        print("\nGenerating answer...")
        answer = client.invoke(request)

        print("\nGenerated answer:")
        print("-" * 40)
        print(answer)
        print("-" * 40)

    except Exception as e:
        print(f"Error: {e}")

if __name__ == "__main__":
    main()
