"""
Tool registry

Builds the closed toolset the agent dispatches over. Credentials are read
through providers at call time so a toolset can outlive a token refresh.
"""

import inspect
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from loguru import logger

from qase_analytics.cache.store import CacheStore, get_cache_store
from qase_analytics.clients.qase import QaseClientFactory, create_qase_client
from qase_analytics.tools.base import AgentTool, ToolName, ToolResult
from qase_analytics.tools.generate_chart import GenerateChartTool
from qase_analytics.tools.get_run_results import GetRunResultsTool
from qase_analytics.tools.get_test_cases import GetTestCasesTool
from qase_analytics.tools.get_test_runs import GetTestRunsTool
from qase_analytics.tools.list_projects import ListProjectsTool

# Plain value, sync getter or async getter
ValueProvider = Union[str, Callable[[], str], Callable[[], Awaitable[str]]]


async def resolve_provider(provider: ValueProvider) -> str:
    value: Any = provider() if callable(provider) else provider
    if inspect.isawaitable(value):
        value = await value
    return value


class UnknownToolError(KeyError):
    """The model asked for a tool outside the registered set"""


class Toolset:
    """Name -> tool mapping bound to one user's credentials"""

    def __init__(
        self,
        tools: List[AgentTool],
        token_provider: ValueProvider,
        user_id_provider: ValueProvider,
    ):
        self._tools: Dict[str, AgentTool] = {tool.name.value: tool for tool in tools}
        self._token_provider = token_provider
        self._user_id_provider = user_id_provider

    @property
    def names(self) -> List[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: Union[str, ToolName]) -> AgentTool:
        key = name.value if isinstance(name, ToolName) else name
        try:
            return self._tools[key]
        except KeyError:
            raise UnknownToolError(key) from None

    def openai_schemas(self) -> List[Dict[str, Any]]:
        return [tool.to_openai_tool() for tool in self._tools.values()]

    async def call(self, name: str, arguments: Mapping[str, Any]) -> ToolResult:
        tool = self.get(name)
        token = await resolve_provider(self._token_provider)
        user_id = await resolve_provider(self._user_id_provider)
        logger.debug(f"Calling tool {name} for user {user_id} with {dict(arguments)}")
        return await tool.invoke(token, user_id, arguments)


def build_toolset(
    token_provider: ValueProvider,
    user_id_provider: ValueProvider,
    cache: Optional[CacheStore] = None,
    client_factory: QaseClientFactory = create_qase_client,
    include_chart: bool = True,
) -> Toolset:
    """Create every Qase tool (and the chart tool) sharing one cache and client factory."""
    cache = cache if cache is not None else get_cache_store()
    tools: List[AgentTool] = [
        ListProjectsTool(cache, client_factory),
        GetTestCasesTool(cache, client_factory),
        GetTestRunsTool(cache, client_factory),
        GetRunResultsTool(cache, client_factory),
    ]
    if include_chart:
        tools.append(GenerateChartTool())
    return Toolset(tools, token_provider, user_id_provider)
