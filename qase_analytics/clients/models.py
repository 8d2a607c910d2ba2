"""
Pydantic models for Qase API payloads.

Only the fields the engine reads are declared; everything else the API
returns is ignored on validation.
"""

from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class QaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class QaseRunCounts(QaseModel):
    total: int = 0
    active: int = 0


class QaseProjectCounts(QaseModel):
    cases: int = 0
    suites: int = 0
    milestones: int = 0
    runs: Optional[QaseRunCounts] = None


class QaseProject(QaseModel):
    code: str
    title: str
    description: Optional[str] = None
    counts: Optional[QaseProjectCounts] = None


class QaseTag(QaseModel):
    id: Optional[int] = None
    title: str


class QaseTestCase(QaseModel):
    id: int
    title: str
    description: Optional[str] = None
    severity: Optional[int] = None
    priority: Optional[int] = None
    type: Optional[int] = None
    is_flaky: Optional[int] = None
    behavior: Optional[int] = None
    automation: Optional[int] = None
    status: Optional[int] = None
    suite_id: Optional[int] = None
    milestone_id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    tags: List[QaseTag] = Field(default_factory=list)


class QaseRunStats(QaseModel):
    total: int = 0
    untested: int = 0
    passed: int = 0
    failed: int = 0
    blocked: int = 0
    skipped: int = 0
    retest: int = 0
    in_progress: int = 0
    invalid: int = 0


class QaseTestRun(QaseModel):
    id: int
    title: str
    description: Optional[str] = None
    status: int
    status_text: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    stats: QaseRunStats = Field(default_factory=QaseRunStats)
    time_spent: Optional[int] = None
    environment_id: Optional[int] = None
    milestone_id: Optional[int] = None
    cases: List[int] = Field(default_factory=list)
    cases_count: Optional[int] = None


class QaseResultCase(QaseModel):
    title: str
    description: Optional[str] = None
    severity: Optional[int] = None
    priority: Optional[int] = None
    automation: Optional[int] = None
    status: Optional[int] = None
    suite_id: Optional[int] = None


class QaseResultStep(QaseModel):
    position: int
    status: str
    comment: Optional[str] = None


class QaseAttachment(QaseModel):
    filename: str
    url: str
    mime: Optional[str] = None
    size: Optional[int] = None


class QaseTestResult(QaseModel):
    hash: str
    comment: Optional[str] = None
    stacktrace: Optional[str] = None
    run_id: int
    case_id: int
    case: Optional[QaseResultCase] = None
    status: str
    time_spent_ms: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    attachments: Optional[List[QaseAttachment]] = None
    steps: Optional[List[QaseResultStep]] = None
    param: Optional[Dict[str, str]] = None


EntityT = TypeVar("EntityT", bound=QaseModel)


class QaseList(QaseModel, Generic[EntityT]):
    """Paginated list envelope shared by every Qase list endpoint"""

    total: int
    filtered: int
    count: int
    entities: List[EntityT]


QaseProjectList = QaseList[QaseProject]
QaseTestCaseList = QaseList[QaseTestCase]
QaseTestRunList = QaseList[QaseTestRun]
QaseTestResultList = QaseList[QaseTestResult]
