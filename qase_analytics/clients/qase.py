"""
Qase API client

Async HTTP client for the Qase.io REST API with retry and exponential
backoff on transient failures.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from qase_analytics.clients.models import (
    QaseProject,
    QaseProjectList,
    QaseTestCase,
    QaseTestCaseList,
    QaseTestResult,
    QaseTestResultList,
    QaseTestRun,
    QaseTestRunList,
)
from qase_analytics.config.settings import settings
from qase_analytics.utils.errors import QaseApiError, QaseAuthError, QaseRateLimitError

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class RetryConfig:
    """Retry policy for transient Qase API failures"""
    max_retries: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 10000
    backoff_multiplier: float = 2.0

    @classmethod
    def from_settings(cls) -> "RetryConfig":
        return cls(
            max_retries=settings.qase_max_retries,
            initial_delay_ms=settings.qase_initial_delay_ms,
            max_delay_ms=settings.qase_max_delay_ms,
            backoff_multiplier=settings.qase_backoff_multiplier,
        )


def calculate_backoff(attempt: int, config: RetryConfig) -> float:
    """Delay in milliseconds before retry number ``attempt`` (0-based), with up to 30% jitter."""
    delay = config.initial_delay_ms * (config.backoff_multiplier ** attempt)
    jitter = random.random() * 0.3 * delay
    return min(delay + jitter, config.max_delay_ms)


def is_retryable_status(status_code: int) -> bool:
    """5xx and 408 are retried; 4xx (429 included) are left to the caller."""
    return status_code >= 500 or status_code == 408


def _clean_params(params: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None and value != ""}


class QaseClient:
    """
    Client for the Qase.io API.

    Example:
        async with QaseClient(token) as client:
            projects = await client.get_projects(limit=10)
    """

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not token:
            raise ValueError("Qase API token is required")

        self.base_url = (base_url or settings.qase_api_base_url).rstrip("/")
        self.retry_config = retry_config or RetryConfig.from_settings()
        self._sleep = sleep
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Token": token,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout or settings.qase_request_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "QaseClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _send_once(self, endpoint: str, params: Optional[Dict[str, Any]]) -> Any:
        try:
            response = await self._http.get(endpoint, params=_clean_params(params or {}))
        except httpx.TimeoutException as e:
            raise QaseApiError(f"Qase API request timed out: {e}", 408) from e

        if response.status_code in (401, 403):
            raise QaseAuthError()

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise QaseRateLimitError(int(retry_after) if retry_after and retry_after.isdigit() else None)

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("errorMessage") if isinstance(body, dict) else None
            error_fields = body.get("errorFields") if isinstance(body, dict) else None
            raise QaseApiError(message or f"HTTP {response.status_code}", response.status_code, error_fields)

        try:
            data = response.json()
        except ValueError as e:
            raise QaseApiError("Invalid response format from Qase API", 500) from e

        if not isinstance(data, dict) or not data.get("status") or "result" not in data:
            raise QaseApiError("Invalid response format from Qase API", 500)
        return data["result"]

    async def request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``endpoint`` and return the ``result`` of the response envelope, retrying transient errors."""
        config = self.retry_config
        attempt = 0
        while True:
            try:
                return await self._send_once(endpoint, params)
            except (QaseAuthError, QaseRateLimitError):
                raise
            except QaseApiError as e:
                if attempt >= config.max_retries or not is_retryable_status(e.status_code):
                    raise
                delay_ms = calculate_backoff(attempt, config)
                logger.warning(
                    f"Qase API request {endpoint} failed with {e.status_code} "
                    f"(attempt {attempt + 1}/{config.max_retries + 1}), retrying in {round(delay_ms)}ms"
                )
                await self._sleep(delay_ms / 1000)
                attempt += 1

    @staticmethod
    def _parse(model: Type[ModelT], payload: Any, what: str) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Invalid {what} response from Qase API: {e}")
            raise QaseApiError(f"Invalid {what} response from Qase API", 500) from e

    async def validate_token(self) -> bool:
        """True when the token can list projects, False on an auth failure."""
        try:
            await self.get_projects(limit=1)
            return True
        except QaseAuthError:
            return False

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def get_projects(self, limit: int = 100, offset: int = 0) -> QaseProjectList:
        result = await self.request("/project", {"limit": limit, "offset": offset})
        return self._parse(QaseProjectList, result, "project list")

    async def get_project(self, code: str) -> QaseProject:
        result = await self.request(f"/project/{code}")
        return self._parse(QaseProject, result, "project")

    # ------------------------------------------------------------------
    # Test cases
    # ------------------------------------------------------------------

    async def get_test_cases(
        self,
        project_code: str,
        search: Optional[str] = None,
        milestone_id: Optional[int] = None,
        suite_id: Optional[int] = None,
        severity: Optional[str] = None,
        priority: Optional[str] = None,
        type: Optional[str] = None,
        behavior: Optional[str] = None,
        automation: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> QaseTestCaseList:
        params = {
            "search": search,
            "milestone_id": milestone_id,
            "suite_id": suite_id,
            "severity": severity,
            "priority": priority,
            "type": type,
            "behavior": behavior,
            "automation": automation,
            "status": status,
            "limit": limit,
            "offset": offset,
        }
        result = await self.request(f"/case/{project_code}", params)
        return self._parse(QaseTestCaseList, result, "test case list")

    async def get_test_case(self, project_code: str, case_id: int) -> QaseTestCase:
        result = await self.request(f"/case/{project_code}/{case_id}")
        return self._parse(QaseTestCase, result, "test case")

    # ------------------------------------------------------------------
    # Test runs
    # ------------------------------------------------------------------

    async def get_test_runs(
        self,
        project_code: str,
        search: Optional[str] = None,
        status: Optional[str] = None,
        milestone: Optional[int] = None,
        environment: Optional[int] = None,
        from_start_time: Optional[str] = None,
        to_start_time: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
        include: Optional[str] = None,
    ) -> QaseTestRunList:
        params = {
            "search": search,
            "status": status,
            "milestone": milestone,
            "environment": environment,
            "from_start_time": from_start_time,
            "to_start_time": to_start_time,
            "limit": limit,
            "offset": offset,
            "include": include,
        }
        result = await self.request(f"/run/{project_code}", params)
        return self._parse(QaseTestRunList, result, "test run list")

    async def get_test_run(self, project_code: str, run_id: int) -> QaseTestRun:
        result = await self.request(f"/run/{project_code}/{run_id}")
        return self._parse(QaseTestRun, result, "test run")

    # ------------------------------------------------------------------
    # Test results
    # ------------------------------------------------------------------

    async def get_test_results(
        self,
        project_code: str,
        status: Optional[str] = None,
        run: Optional[int] = None,
        case_id: Optional[int] = None,
        member: Optional[int] = None,
        from_end_time: Optional[str] = None,
        to_end_time: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> QaseTestResultList:
        params = {
            "status": status,
            "run": run,
            "case_id": case_id,
            "member": member,
            "from_end_time": from_end_time,
            "to_end_time": to_end_time,
            "limit": limit,
            "offset": offset,
        }
        result = await self.request(f"/result/{project_code}", params)
        return self._parse(QaseTestResultList, result, "test result list")

    async def get_test_result(self, project_code: str, result_hash: str) -> QaseTestResult:
        result = await self.request(f"/result/{project_code}/{result_hash}")
        return self._parse(QaseTestResult, result, "test result")


# token -> client
QaseClientFactory = Callable[[str], QaseClient]


def create_qase_client(token: str) -> QaseClient:
    """Default client factory used by the tools."""
    return QaseClient(token)
