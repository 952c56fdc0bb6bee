"""HTTP adapter for the remote browser-automation claim worker."""

from __future__ import annotations

from typing import Any

import httpx

from claim_pipeline.domain.entities import ClaimExecution
from claim_pipeline.domain.errors import ClaimExecutorError, ClaimExecutorUnavailableError
from claim_pipeline.domain.ports import ClaimExecutor


class HttpClaimExecutor(ClaimExecutor):
    """Call `POST {endpoint}/claims` on the automation worker."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 150.0,
        connect_timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = self._normalize_base_url(base_url)
        self._timeout = httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds)
        self._transport = transport

    async def claim(self, account_id: str) -> ClaimExecution:
        url = f"{self._base_url}/claims"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            ) as http_client:
                response = await http_client.post(url, json={"accountId": account_id})
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise ClaimExecutorUnavailableError(f"POST {url} unreachable: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ClaimExecutorError(f"POST {url} failed: {exc}") from exc

        if response.status_code in {502, 503, 504}:
            raise ClaimExecutorUnavailableError(
                f"POST {url} failed: {response.status_code} claim worker unavailable"
            )
        if not response.is_success:
            raise ClaimExecutorError(
                f"POST {url} failed: {response.status_code} {self._detail_from_response(response)}"
            )
        return self._parse_execution(response)

    def _parse_execution(self, response: httpx.Response) -> ClaimExecution:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ClaimExecutorError("Claim worker returned a non-JSON body.") from exc
        if not isinstance(payload, dict):
            raise ClaimExecutorError("Claim worker returned an unexpected payload.")

        items = payload.get("claimedItems") or []
        if not isinstance(items, list):
            raise ClaimExecutorError("claimedItems must be a list.")
        return ClaimExecution(
            success=bool(payload.get("success")),
            claimed_items=tuple(str(item) for item in items),
            screenshot_path=self._optional_str(payload, "screenshotPath"),
            error=self._optional_str(payload, "error"),
        )

    def _optional_str(self, payload: dict[str, Any], key: str) -> str | None:
        value = payload.get(key)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def _detail_from_response(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            text = response.text.strip()
            return text or "<no response body>"

        if isinstance(payload, dict):
            detail = payload.get("detail") or payload.get("error")
            if isinstance(detail, str):
                return detail
        return str(payload)

    def _normalize_base_url(self, base_url: str) -> str:
        normalized = base_url.strip().rstrip("/")
        if not normalized:
            raise ClaimExecutorError("Claim executor endpoint cannot be empty.")
        return normalized


__all__ = ["HttpClaimExecutor"]
