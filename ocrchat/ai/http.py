"""Shared JSON-over-HTTP client for the remote providers (one request, no retries)."""

import logging
from typing import Any

import requests

from ocrchat.core.errors import TransportError

_log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120.0


def extract_error_message(resp: requests.Response, fallback: str) -> str:
    """Return the provider's error.message from a failed response, else fallback."""
    try:
        data = resp.json()
    except ValueError:
        return fallback
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict):
            message = err.get("message")
            if isinstance(message, str) and message.strip():
                return message
    return fallback


class ProviderClient:
    """
    Blocking JSON POST client for one provider.

    Uses a persistent requests.Session. Every call is bounded by timeout_seconds. Non-2xx and
    network failures raise TransportError; a 2xx body that is not a JSON object comes back as {}
    so callers can treat it as an empty result.
    """

    def __init__(
        self,
        provider_name: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.provider_name = provider_name
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    @property
    def generic_error(self) -> str:
        return f"{self.provider_name} API error"

    def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST JSON and return the parsed response object."""
        all_headers = {"Content-Type": "application/json"}
        if headers:
            all_headers.update(headers)
        _log.debug("POST %s (%s)", url, self.provider_name)
        try:
            resp = self._session.post(
                url,
                json=payload,
                headers=all_headers,
                params=params,
                timeout=self._timeout,
            )
        except requests.Timeout as e:
            raise TransportError(
                f"{self.provider_name} did not respond within {self._timeout:g}s"
            ) from e
        except requests.RequestException as e:
            raise TransportError(f"{self.provider_name} request failed: {e}") from e

        if not resp.ok:
            message = extract_error_message(resp, self.generic_error)
            _log.warning("%s returned HTTP %s: %s", self.provider_name, resp.status_code, message)
            raise TransportError(message, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError:
            _log.warning("%s returned a non-JSON body", self.provider_name)
            return {}
        return data if isinstance(data, dict) else {}
