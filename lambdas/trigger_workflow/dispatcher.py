# lambdas/trigger_workflow/dispatcher.py
import json
from typing import Optional

import requests

from .models import AppSettings, ConfigurationError, DispatchResult, ErrorDispatchPayload

GITHUB_API_VERSION = "2022-11-28"


class DispatchFailedError(RuntimeError):
    """Raised to the invoker when at least one dispatch in the batch did not go through."""

    def __init__(self, message: str, result: Optional[DispatchResult] = None):
        super().__init__(message)
        self.result = result


class WorkflowDispatcher:
    """
    Triggers the GitHub Actions workflow through the repository_dispatch API.

    Each payload is sent exactly once; retrying is left to whoever redelivers
    the batch.
    """

    def __init__(self, settings: AppSettings):
        missing = settings.missing_dispatch_settings()
        if missing:
            raise ConfigurationError(f"Missing required environment variable(s): {', '.join(missing)}")

        self.url = settings.dispatch_url
        self.event_type = settings.dispatch_event_type
        self.timeout = settings.dispatch_timeout_seconds
        self.headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {settings.github_token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def dispatch(self, payload: ErrorDispatchPayload) -> DispatchResult:
        """Sends one trigger event. Transport failures come back as a failed result."""
        body = {
            "event_type": self.event_type,
            "client_payload": payload.to_client_payload(),
        }
        print(f"Triggering GitHub Actions with payload: {json.dumps(body)}")

        try:
            response = requests.post(self.url, json=body, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            reason = f"timeout after {self.timeout}s: {e}"
        except requests.exceptions.HTTPError as e:
            reason = self._describe_http_error(e.response)
        except requests.exceptions.RequestException as e:
            reason = f"network error: {e}"
        else:
            print(f"✅ GitHub Actions triggered for {payload.error_kind} at {payload.timestamp} (HTTP {response.status_code})")
            return DispatchResult.success(payload)

        print(f"❌ Failed to trigger GitHub Actions for {payload.error_kind} at {payload.timestamp} "
              f"({payload.source_id}/{payload.stream_id}): {reason}")
        return DispatchResult.failure(payload, reason)

    @staticmethod
    def _describe_http_error(response: Optional[requests.Response]) -> str:
        if response is None:
            return "HTTP error without a response"

        reason = f"HTTP {response.status_code}"
        try:
            message = response.json().get("message")
        except (ValueError, AttributeError):
            message = None
        if message:
            reason += f": {message}"
        if response.status_code == 429 or response.headers.get("X-RateLimit-Remaining") == "0":
            reason += f" (rate limited, resets at {response.headers.get('X-RateLimit-Reset', 'unknown')})"
        return reason
