from __future__ import annotations

import logging

import httpx

from resume_crawler.models import ControllerBinding

logger = logging.getLogger(__name__)


class ControllerClient:
    """Best-effort form-POST transport to the crawl controller.

    Pushes are never retried and their failures never reach the caller:
    transport and HTTP errors are logged and reported as ``False``.
    """

    def __init__(
        self,
        binding: ControllerBinding,
        *,
        timeout_seconds: float = 20.0,
        client: httpx.Client | None = None,
    ):
        self.binding = binding
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds, follow_redirects=True)

    def relay_results(self, status_message: str, results: str) -> bool:
        return self._post(
            "relay_results",
            {
                "selector_id": self.binding.selector_id,
                "status_message": status_message,
                "results": results,
            },
        )

    def update_status(self, status_message: str) -> bool:
        return self._post(
            "update_status",
            {"selector_id": self.binding.selector_id, "status_message": status_message},
        )

    def _post(self, endpoint: str, data: dict[str, str]) -> bool:
        url = f"{self.binding.url.rstrip('/')}/{endpoint}"
        try:
            response = self._client.post(url, data=data)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("controller push to %s failed: %s", url, exc)
            return False
        return True

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
