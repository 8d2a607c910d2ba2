"""
get_test_runs - test runs of one project with execution stats
"""

from typing import ClassVar, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from qase_analytics.clients.models import QaseTestRun, QaseTestRunList
from qase_analytics.clients.qase import QaseClient
from qase_analytics.config.constants import RESOURCE_RUNS
from qase_analytics.config.settings import settings
from qase_analytics.tools.base import CachedQaseTool, ErrorKind, ToolName, ToolResult
from qase_analytics.tools.mappings import map_run_status, pass_rate


class GetTestRunsInput(BaseModel):
    project_code: str = Field(description="The Qase project code (e.g. 'GV', 'DEMO')")
    status: Optional[Literal["active", "complete", "abort"]] = Field(default=None, description="Filter by run status")
    from_start_time: Optional[str] = Field(
        default=None, description="Only runs started after this date (ISO 8601, e.g. '2024-01-01')"
    )
    to_start_time: Optional[str] = Field(
        default=None, description="Only runs started before this date (ISO 8601, e.g. '2024-12-31')"
    )
    environment: Optional[int] = Field(default=None, ge=1, description="Filter by environment ID")
    milestone: Optional[int] = Field(default=None, ge=1, description="Filter by milestone ID")
    limit: int = Field(default=100, ge=1, le=100, description="Maximum number of runs to return (1-100)")
    offset: int = Field(default=0, ge=0, description="Number of runs to skip for pagination")


class RunStats(BaseModel):
    total: int = 0
    passed: int = 0
    failed: int = 0
    blocked: int = 0
    skipped: int = 0
    untested: int = 0


class RunItem(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    status: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    stats: RunStats
    pass_rate: Union[int, float] = 0
    environment_id: Optional[int] = None
    milestone_id: Optional[int] = None
    time_spent: Optional[int] = None
    cases_count: int = 0


class GetTestRunsResult(ToolResult):
    total: int = 0
    filtered: int = 0
    count: int = 0
    runs: List[RunItem] = Field(default_factory=list)


def normalize_test_run(run: QaseTestRun) -> RunItem:
    stats = run.stats
    return RunItem(
        id=run.id,
        title=run.title,
        description=run.description,
        status=map_run_status(run.status),
        start_time=run.start_time,
        end_time=run.end_time,
        stats=RunStats(
            total=stats.total,
            passed=stats.passed,
            failed=stats.failed,
            blocked=stats.blocked,
            skipped=stats.skipped,
            untested=stats.untested,
        ),
        pass_rate=pass_rate(stats.passed, stats.total),
        environment_id=run.environment_id,
        milestone_id=run.milestone_id,
        time_spent=run.time_spent,
        cases_count=run.cases_count or len(run.cases),
    )


class GetTestRunsTool(CachedQaseTool[GetTestRunsInput, GetTestRunsResult]):
    name: ClassVar[ToolName] = ToolName.GET_TEST_RUNS
    description: ClassVar[str] = (
        "Get test runs (executions) from a Qase project with pass/fail statistics and "
        "pass rate per run. Supports filtering by status, start date range, environment "
        "and milestone. Use it for trends and execution history."
    )
    input_model = GetTestRunsInput
    resource_kind = RESOURCE_RUNS
    resource_label = "test runs"
    raw_model = QaseTestRunList

    @classmethod
    def default_ttl(cls) -> int:
        return settings.cache_ttl_runs

    async def fetch(self, client: QaseClient, params: GetTestRunsInput) -> QaseTestRunList:
        return await client.get_test_runs(
            params.project_code,
            status=params.status,
            from_start_time=params.from_start_time,
            to_start_time=params.to_start_time,
            environment=params.environment,
            milestone=params.milestone,
            limit=params.limit,
            offset=params.offset,
        )

    def normalize(self, raw: QaseTestRunList, params: GetTestRunsInput) -> GetTestRunsResult:
        return GetTestRunsResult(
            total=raw.total,
            filtered=raw.filtered,
            count=raw.count,
            runs=[normalize_test_run(run) for run in raw.entities],
        )

    def failure(self, params: GetTestRunsInput, message: str, kind: ErrorKind) -> GetTestRunsResult:
        return GetTestRunsResult(success=False, error=message, error_kind=kind)
