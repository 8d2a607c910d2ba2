"""
Tools layer - cached Qase retrieval tools and the chart tool
"""

from qase_analytics.tools.base import AgentTool, CachedQaseTool, ToolName, ToolResult
from qase_analytics.tools.generate_chart import GenerateChartTool
from qase_analytics.tools.get_run_results import GetRunResultsTool
from qase_analytics.tools.get_test_cases import GetTestCasesTool
from qase_analytics.tools.get_test_runs import GetTestRunsTool
from qase_analytics.tools.list_projects import ListProjectsTool
from qase_analytics.tools.mappings import pass_rate
from qase_analytics.tools.registry import Toolset, UnknownToolError, build_toolset, resolve_provider

__all__ = [
    "AgentTool",
    "CachedQaseTool",
    "ToolName",
    "ToolResult",
    "ListProjectsTool",
    "GetTestCasesTool",
    "GetTestRunsTool",
    "GetRunResultsTool",
    "GenerateChartTool",
    "Toolset",
    "UnknownToolError",
    "build_toolset",
    "pass_rate",
    "resolve_provider",
]
