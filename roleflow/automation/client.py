"""Resilient client for the automation trigger endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from ..config import AutomationSettings, load_config
from ..contracts import AutomationResult, utc_now
from ..utils.retry import RetryPolicy, linear_backoff
from .errors import fallback_error, is_no_response, parse_error_body
from .summary import parse_success_body

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "..."


class AutomationClient:
    """Trigger automation flows over HTTP with timeouts and bounded retries.

    Every call returns an :class:`AutomationResult`; transport errors,
    timeouts and error responses are classified rather than raised.
    """

    def __init__(
        self,
        settings: Optional[AutomationSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or load_config().automation
        self._client = http_client
        self._owns_client = http_client is None

    async def __aenter__(self) -> "AutomationClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.timeout)
        return self._client

    # ------------------------------------------------------------------
    # Helpers
    def retry_policy(self, is_test: bool = False) -> RetryPolicy:
        """Return the retry policy for a full trigger or a test call."""
        attempts = self.settings.test_max_retries if is_test else self.settings.max_retries
        return RetryPolicy(
            max_attempts=max(1, attempts),
            backoff=linear_backoff(self.settings.retry_delay),
            max_retry_after=self.settings.max_retry_after,
        )

    def truncate(self, description: str) -> str:
        limit = self.settings.max_description_length
        if len(description) > limit:
            return description[:limit] + TRUNCATION_MARKER
        return description

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.settings.user_agent,
            "Cache-Control": "no-cache",
        }

    def _redacted_url(self) -> str:
        return self.settings.url[:100] + "..."

    def _retry_after(self, response: httpx.Response) -> int:
        header = response.headers.get("Retry-After")
        try:
            return int(header) if header else self.settings.default_retry_after
        except ValueError:
            return self.settings.default_retry_after

    @staticmethod
    def _decode_error(response: httpx.Response) -> Optional[Any]:
        text = response.text
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return None

    def _processing_result(
        self, description: str, status_code: int, tracking_id: Optional[str]
    ) -> AutomationResult:
        summary = (
            "✅ Power Automate workflow กำลังประมวลผลในเบื้องหลัง\n\n"
            "🔄 **สถานะ**: กำลังดำเนินการ\n"
            f"📋 **คำขอ**: {description}\n"
            f"⏱️ **เวลา**: {datetime.now().strftime('%H:%M:%S')}\n\n"
            "💡 **หมายเหตุ**: Logic App กำลังประมวลผลคำขอของคุณ ผลลัพธ์จะปรากฏเมื่อเสร็จสิ้น"
        )
        return AutomationResult(
            success=True,
            message="Power Automate workflow triggered successfully (processing in background)",
            status_code=status_code,
            tracking_id=tracking_id,
            is_temporary=False,
            is_processing=True,
            flow_summary=summary,
        )

    def classify_response(
        self, response: httpx.Response, description: str, is_test: bool = False
    ) -> AutomationResult:
        """Translate one HTTP response into an :class:`AutomationResult`."""
        status = response.status_code

        if response.is_success:
            tasks, summary = parse_success_body(response.text)
            return AutomationResult(
                success=True,
                message=(
                    "Test connection successful"
                    if is_test
                    else "Power Automate workflow triggered successfully"
                ),
                status_code=status,
                tasks=tasks,
                flow_summary=summary,
            )

        data = self._decode_error(response)
        info = parse_error_body(data) if data is not None else fallback_error(status)

        # The backend accepted the run but did not answer in time.
        if is_no_response(data, info):
            logger.info(f"Automation returned {status} NoResponse, treating as processing")
            return self._processing_result(description, status, info.tracking_id)

        if status == 429:
            retry_after = self._retry_after(response)
            logger.warning(f"Rate limited, retry after {retry_after} seconds")
            return AutomationResult(
                success=False,
                error="Rate limited by Power Automate",
                status_code=status,
                retry_after=retry_after,
                is_temporary=True,
            )

        if status >= 500:
            logger.error(f"Automation server error {status}: {info.message}")
            return AutomationResult(
                success=False,
                error=info.message,
                status_code=status,
                tracking_id=info.tracking_id,
                is_temporary=info.is_temporary,
                is_processing=info.is_processing,
            )

        logger.error(f"Automation client error {status}: {info.message}")
        return AutomationResult(
            success=False,
            error=info.message,
            status_code=status,
            tracking_id=info.tracking_id,
            is_temporary=False,
            is_processing=info.is_processing,
        )

    # ------------------------------------------------------------------
    # Public API
    async def trigger(self, description: str, is_test: bool = False) -> AutomationResult:
        """Send ``description`` to the automation endpoint.

        Args:
            description: Natural language instruction for the flow.
            is_test: Marks the call as a connectivity test; test calls are
                attempted only once.

        Returns:
            The classified outcome. Never raises for backend or network
            failures.
        """
        if not description or not description.strip():
            return AutomationResult(
                success=False, error="Description is required", is_temporary=False
            )
        if not self.settings.url:
            return AutomationResult(
                success=False,
                error="Automation endpoint is not configured",
                is_temporary=False,
            )

        payload_description = self.truncate(description)
        policy = self.retry_policy(is_test)
        last_error: Optional[str] = None
        last_status: Optional[int] = None
        last_tracking_id: Optional[str] = None

        for attempt in range(1, policy.max_attempts + 1):
            logger.info(
                f"Automation attempt {attempt}/{policy.max_attempts} (test: {is_test})"
            )
            body = {
                "description": payload_description,
                "timestamp": utc_now().isoformat(),
                "source": self.settings.source,
                "isTest": is_test,
            }
            logger.debug(
                f"Sending request to {self._redacted_url()} ({len(json.dumps(body))} bytes)"
            )

            try:
                response = await asyncio.wait_for(
                    self._http().post(self.settings.url, json=body, headers=self._headers()),
                    timeout=self.settings.timeout,
                )
            except asyncio.TimeoutError:
                last_error = f"Request timed out after {self.settings.timeout} seconds"
                logger.error(f"Timeout on attempt {attempt}")
            except httpx.TransportError as exc:
                last_error = str(exc) or exc.__class__.__name__
                logger.error(f"Network error on attempt {attempt}: {last_error}")
            else:
                last_status = response.status_code
                result = self.classify_response(response, description, is_test)
                last_tracking_id = result.tracking_id or last_tracking_id
                if (
                    not result.success
                    and policy.should_retry(result)
                    and policy.can_retry(attempt)
                ):
                    hint = result.retry_after if result.status_code == 429 else None
                    await policy.wait(attempt, hint)
                    continue
                return result

            if policy.can_retry(attempt):
                await policy.wait(attempt)

        return AutomationResult(
            success=False,
            error=last_error or "All retry attempts failed",
            status_code=last_status,
            tracking_id=last_tracking_id,
            is_temporary=True,
        )

    async def test_connection(self) -> AutomationResult:
        """Send a lightweight test trigger."""
        logger.info("Testing automation connection...")
        return await self.trigger(
            f"Connection test from Role Chat Interface - {utc_now().isoformat()}",
            is_test=True,
        )

    async def check_health(self) -> AutomationResult:
        """Probe the endpoint host with a ``HEAD`` request."""
        logger.info("Checking automation endpoint health...")
        if not self.settings.url:
            return AutomationResult(
                success=False,
                error="Automation endpoint is not configured",
                is_temporary=False,
            )

        url = self.settings.url.split("?")[0]
        try:
            response = await asyncio.wait_for(
                self._http().head(url, headers={"User-Agent": self.settings.user_agent}),
                timeout=self.settings.health_timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Health check timed out")
            return AutomationResult(
                success=False, error="Health check timed out", is_temporary=True
            )
        except httpx.HTTPError as exc:
            logger.error(f"Health check failed: {exc}")
            return AutomationResult(
                success=False, error=str(exc) or "Health check failed", is_temporary=True
            )

        status = response.status_code
        return AutomationResult(
            success=status < 500,
            message=f"Health check returned {status}",
            status_code=status,
            is_temporary=status >= 500,
        )
