"""
list_projects - every Qase project the user's token can see
"""

from typing import ClassVar, List, Optional

from pydantic import BaseModel, Field

from qase_analytics.clients.models import QaseProject, QaseProjectList
from qase_analytics.clients.qase import QaseClient
from qase_analytics.config.constants import RESOURCE_PROJECTS
from qase_analytics.config.settings import settings
from qase_analytics.tools.base import CachedQaseTool, ErrorKind, ToolName, ToolResult


class ListProjectsInput(BaseModel):
    limit: int = Field(default=100, ge=1, le=100, description="Maximum number of projects to return (1-100, default: 100)")
    offset: int = Field(default=0, ge=0, description="Number of projects to skip for pagination (default: 0)")


class ProjectSummary(BaseModel):
    code: str
    title: str
    description: Optional[str] = None
    cases_count: int = 0
    suites_count: int = 0


class ListProjectsResult(ToolResult):
    total: int = 0
    count: int = 0
    projects: List[ProjectSummary] = Field(default_factory=list)


def summarize_project(project: QaseProject) -> ProjectSummary:
    counts = project.counts
    return ProjectSummary(
        code=project.code,
        title=project.title,
        description=project.description,
        cases_count=counts.cases if counts else 0,
        suites_count=counts.suites if counts else 0,
    )


class ListProjectsTool(CachedQaseTool[ListProjectsInput, ListProjectsResult]):
    name: ClassVar[ToolName] = ToolName.LIST_PROJECTS
    description: ClassVar[str] = (
        "List all Qase projects available to the user, with their codes, titles and "
        "test case counts. Use this when the user asks which projects exist or before "
        "picking a project to analyze."
    )
    input_model = ListProjectsInput
    resource_kind = RESOURCE_PROJECTS
    resource_label = "projects"
    raw_model = QaseProjectList
    scope_fields = ()

    @classmethod
    def default_ttl(cls) -> int:
        return settings.cache_ttl_projects

    async def fetch(self, client: QaseClient, params: ListProjectsInput) -> QaseProjectList:
        return await client.get_projects(limit=params.limit, offset=params.offset)

    def normalize(self, raw: QaseProjectList, params: ListProjectsInput) -> ListProjectsResult:
        return ListProjectsResult(
            total=raw.total,
            count=raw.count,
            projects=[summarize_project(project) for project in raw.entities],
        )

    def failure(self, params: ListProjectsInput, message: str, kind: ErrorKind) -> ListProjectsResult:
        return ListProjectsResult(success=False, error=message, error_kind=kind)
