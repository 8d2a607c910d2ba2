"""
get_test_cases - test cases of one project with optional filters
"""

from typing import ClassVar, List, Literal, Optional

from pydantic import BaseModel, Field

from qase_analytics.clients.models import QaseTestCase, QaseTestCaseList
from qase_analytics.clients.qase import QaseClient
from qase_analytics.config.constants import RESOURCE_CASES
from qase_analytics.config.settings import settings
from qase_analytics.tools.base import CachedQaseTool, ErrorKind, ToolName, ToolResult
from qase_analytics.tools.mappings import (
    map_automation,
    map_case_status,
    map_priority,
    map_severity,
)


class GetTestCasesInput(BaseModel):
    project_code: str = Field(description="The Qase project code (e.g. 'GV', 'DEMO')")
    search: Optional[str] = Field(default=None, description="Search term to filter test cases by title")
    suite_id: Optional[int] = Field(default=None, ge=1, description="Filter by test suite ID")
    severity: Optional[Literal["blocker", "critical", "major", "normal", "minor", "trivial"]] = Field(
        default=None, description="Filter by severity level"
    )
    priority: Optional[Literal["high", "medium", "low"]] = Field(default=None, description="Filter by priority level")
    automation: Optional[Literal["is-not-automated", "automated", "to-be-automated"]] = Field(
        default=None, description="Filter by automation status"
    )
    status: Optional[Literal["actual", "draft", "deprecated"]] = Field(default=None, description="Filter by test case status")
    limit: int = Field(default=100, ge=1, le=100, description="Maximum number of test cases to return (1-100, default: 100)")
    offset: int = Field(default=0, ge=0, description="Number of test cases to skip for pagination (default: 0)")


class CaseItem(BaseModel):
    id: int
    title: str
    severity: str
    priority: str
    automation: str
    status: str
    suite_id: Optional[int] = None
    is_flaky: bool = False
    tags: List[str] = Field(default_factory=list)


class GetTestCasesResult(ToolResult):
    total: int = 0
    filtered: int = 0
    count: int = 0
    cases: List[CaseItem] = Field(default_factory=list)


def normalize_test_case(case: QaseTestCase) -> CaseItem:
    return CaseItem(
        id=case.id,
        title=case.title,
        severity=map_severity(case.severity),
        priority=map_priority(case.priority),
        automation=map_automation(case.automation),
        status=map_case_status(case.status),
        suite_id=case.suite_id,
        is_flaky=case.is_flaky == 1,
        tags=[tag.title for tag in case.tags],
    )


class GetTestCasesTool(CachedQaseTool[GetTestCasesInput, GetTestCasesResult]):
    name: ClassVar[ToolName] = ToolName.GET_TEST_CASES
    description: ClassVar[str] = (
        "Get test cases from a Qase project. Supports filtering by title search, suite, "
        "severity, priority, automation status and case status. Use it to count cases, "
        "measure automation coverage or find specific tests."
    )
    input_model = GetTestCasesInput
    resource_kind = RESOURCE_CASES
    resource_label = "test cases"
    raw_model = QaseTestCaseList

    @classmethod
    def default_ttl(cls) -> int:
        return settings.cache_ttl_cases

    async def fetch(self, client: QaseClient, params: GetTestCasesInput) -> QaseTestCaseList:
        return await client.get_test_cases(
            params.project_code,
            search=params.search,
            suite_id=params.suite_id,
            severity=params.severity,
            priority=params.priority,
            automation=params.automation,
            status=params.status,
            limit=params.limit,
            offset=params.offset,
        )

    def normalize(self, raw: QaseTestCaseList, params: GetTestCasesInput) -> GetTestCasesResult:
        return GetTestCasesResult(
            total=raw.total,
            filtered=raw.filtered,
            count=raw.count,
            cases=[normalize_test_case(case) for case in raw.entities],
        )

    def failure(self, params: GetTestCasesInput, message: str, kind: ErrorKind) -> GetTestCasesResult:
        return GetTestCasesResult(success=False, error=message, error_kind=kind)
