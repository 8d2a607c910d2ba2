"""
get_run_results - individual test results of one run, grouped by status
"""

from typing import ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from qase_analytics.clients.models import QaseTestResult, QaseTestResultList
from qase_analytics.clients.qase import QaseClient
from qase_analytics.config.constants import OTHER_STATUS_BUCKET, RESOURCE_RESULTS, RESULT_STATUS_BUCKETS
from qase_analytics.config.settings import settings
from qase_analytics.tools.base import CachedQaseTool, ErrorKind, ToolName, ToolResult
from qase_analytics.tools.mappings import (
    map_automation,
    map_priority,
    map_severity,
    pass_rate,
    status_bucket,
)

ResultStatus = Literal["passed", "failed", "blocked", "skipped", "invalid", "in_progress"]


class GetRunResultsInput(BaseModel):
    project_code: str = Field(description="The Qase project code (e.g. 'GV', 'DEMO')")
    run_id: int = Field(ge=1, description="The test run ID to get results for")
    status: Optional[ResultStatus] = Field(default=None, description="Filter results by status")
    limit: int = Field(default=100, ge=1, le=100, description="Maximum number of results to return (1-100)")
    offset: int = Field(default=0, ge=0, description="Number of results to skip for pagination")


class ResultCaseInfo(BaseModel):
    title: str
    description: Optional[str] = None
    severity: str
    priority: str
    automation: str


class ResultStep(BaseModel):
    position: int
    status: str
    comment: Optional[str] = None


class ResultAttachment(BaseModel):
    filename: str
    url: str
    mime: Optional[str] = None
    size: Optional[int] = None


class ResultItem(BaseModel):
    hash: str
    case_id: int
    case_title: str
    status: str
    duration: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    comment: Optional[str] = None
    stacktrace: Optional[str] = None
    steps: List[ResultStep] = Field(default_factory=list)
    attachments: List[ResultAttachment] = Field(default_factory=list)
    case: Optional[ResultCaseInfo] = None


class ResultsSummary(BaseModel):
    passed: int = 0
    failed: int = 0
    blocked: int = 0
    skipped: int = 0
    invalid: int = 0
    in_progress: int = 0
    other: int = 0
    pass_rate: Union[int, float] = 0


def _empty_groups() -> Dict[str, List[ResultItem]]:
    return {bucket: [] for bucket in (*RESULT_STATUS_BUCKETS, OTHER_STATUS_BUCKET)}


class GetRunResultsResult(ToolResult):
    run_id: int = 0
    total: int = 0
    filtered: int = 0
    count: int = 0
    results: List[ResultItem] = Field(default_factory=list)
    by_status: Dict[str, List[ResultItem]] = Field(default_factory=_empty_groups)
    summary: ResultsSummary = Field(default_factory=ResultsSummary)


def normalize_test_result(result: QaseTestResult) -> ResultItem:
    case = result.case
    return ResultItem(
        hash=result.hash,
        case_id=result.case_id,
        case_title=case.title if case else f"Case #{result.case_id}",
        status=result.status,
        duration=result.time_spent_ms,
        start_time=result.start_time,
        end_time=result.end_time,
        comment=result.comment,
        stacktrace=result.stacktrace,
        steps=[
            ResultStep(position=step.position, status=step.status, comment=step.comment)
            for step in result.steps or []
        ],
        attachments=[
            ResultAttachment(filename=item.filename, url=item.url, mime=item.mime, size=item.size)
            for item in result.attachments or []
        ],
        case=ResultCaseInfo(
            title=case.title,
            description=case.description,
            severity=map_severity(case.severity),
            priority=map_priority(case.priority),
            automation=map_automation(case.automation),
        ) if case else None,
    )


def group_by_status(results: List[ResultItem]) -> Dict[str, List[ResultItem]]:
    groups = _empty_groups()
    for item in results:
        groups[status_bucket(item.status)].append(item)
    return groups


def summarize(groups: Dict[str, List[ResultItem]]) -> ResultsSummary:
    counts = {bucket: len(items) for bucket, items in groups.items()}
    total = sum(counts.values())
    return ResultsSummary(**counts, pass_rate=pass_rate(counts["passed"], total))


class GetRunResultsTool(CachedQaseTool[GetRunResultsInput, GetRunResultsResult]):
    name: ClassVar[ToolName] = ToolName.GET_RUN_RESULTS
    description: ClassVar[str] = (
        "Get the individual test results of a specific test run, grouped by status "
        "(passed, failed, blocked, skipped, invalid, in_progress) with a summary and "
        "pass rate. Includes comments, stack traces and steps for investigating failures."
    )
    input_model = GetRunResultsInput
    resource_kind = RESOURCE_RESULTS
    resource_label = "run results"
    raw_model = QaseTestResultList
    scope_fields = ("project_code", "run_id")

    @classmethod
    def default_ttl(cls) -> int:
        return settings.cache_ttl_results

    async def fetch(self, client: QaseClient, params: GetRunResultsInput) -> QaseTestResultList:
        return await client.get_test_results(
            params.project_code,
            run=params.run_id,
            status=params.status,
            limit=params.limit,
            offset=params.offset,
        )

    def normalize(self, raw: QaseTestResultList, params: GetRunResultsInput) -> GetRunResultsResult:
        results = [normalize_test_result(item) for item in raw.entities]
        groups = group_by_status(results)
        return GetRunResultsResult(
            run_id=params.run_id,
            total=raw.total,
            filtered=raw.filtered,
            count=raw.count,
            results=results,
            by_status=groups,
            summary=summarize(groups),
        )

    def failure(self, params: GetRunResultsInput, message: str, kind: ErrorKind) -> GetRunResultsResult:
        return GetRunResultsResult(success=False, error=message, error_kind=kind, run_id=params.run_id)
