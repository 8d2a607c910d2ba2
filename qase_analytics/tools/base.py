"""
Tool base classes

AgentTool is the LLM-facing surface every tool shares (name, description,
argument model, OpenAI schema). CachedQaseTool adds the fetch-with-cache
pipeline used by the four Qase retrieval tools:

    fingerprint filters -> cache lookup -> Qase API on miss -> normalize
                        -> cache raw payload -> ToolResult

Retrieval tools never raise; every failure becomes ``success=False``.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar, Dict, Generic, Literal, Mapping, Optional, Tuple, Type, TypeVar, Union

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from qase_analytics.cache.keys import build_cache_key, filter_fingerprint
from qase_analytics.cache.store import CacheStore
from qase_analytics.clients.models import QaseList
from qase_analytics.clients.qase import QaseClient, QaseClientFactory, create_qase_client
from qase_analytics.utils.errors import QaseApiError, QaseAuthError

TOOL_AUTH_ERROR = "Invalid or expired Qase API token. Please reconnect."

ErrorKind = Literal["auth", "api", "unknown", "validation"]


class ToolName(str, Enum):
    """Closed set of tools the agent may call"""
    LIST_PROJECTS = "list_projects"
    GET_TEST_CASES = "get_test_cases"
    GET_TEST_RUNS = "get_test_runs"
    GET_RUN_RESULTS = "get_run_results"
    GENERATE_CHART = "generate_chart"


class ToolResult(BaseModel):
    """Common envelope of every tool result"""
    success: bool = True
    error: Optional[str] = None
    cached: bool = False
    # Read by the agent only, never sent to the model
    error_kind: Optional[ErrorKind] = Field(default=None, exclude=True)

    def to_model_payload(self) -> str:
        """JSON handed back to the LLM as the tool message content."""
        return self.model_dump_json(exclude_none=False)


class ToolArgumentError(ToolResult):
    success: bool = False


InputT = TypeVar("InputT", bound=BaseModel)
ResultT = TypeVar("ResultT", bound=ToolResult)


class AgentTool(ABC, Generic[InputT, ResultT]):
    """A tool the agent can bind and call by name."""

    name: ClassVar[ToolName]
    description: ClassVar[str]
    input_model: ClassVar[Type[BaseModel]]

    def to_openai_tool(self) -> Dict[str, Any]:
        """OpenAI function-calling schema for ``bind_tools``."""
        parameters = self.input_model.model_json_schema()
        parameters.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": parameters,
            },
        }

    def parse_arguments(self, arguments: Union[InputT, Mapping[str, Any]]) -> InputT:
        if isinstance(arguments, self.input_model):
            return arguments
        return self.input_model.model_validate(dict(arguments))

    @abstractmethod
    async def invoke(self, token: str, user_id: str, arguments: Mapping[str, Any]) -> ToolResult:
        """Validate arguments and execute; never raises."""

    async def run(self, token: str, user_id: str, arguments: Mapping[str, Any]) -> str:
        result = await self.invoke(token, user_id, arguments)
        return result.to_model_payload()

    def _argument_error(self, error: ValidationError) -> ToolArgumentError:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in issue['loc']) or 'arguments'}: {issue['msg']}"
            for issue in error.errors()
        )
        logger.warning(f"Invalid arguments for {self.name.value}: {problems}")
        return ToolArgumentError(
            error=f"Invalid arguments for {self.name.value}: {problems}",
            error_kind="validation",
        )


class CachedQaseTool(AgentTool[InputT, ResultT]):
    """
    Shared fetch-with-cache pipeline for one Qase resource kind.

    Subclasses declare the resource kind, TTL, which input fields scope the
    cache key rather than the fingerprint, and how to fetch, normalize and
    build a failure result.
    """

    resource_kind: ClassVar[str]
    resource_label: ClassVar[str]
    raw_model: ClassVar[Type[QaseList]]
    scope_fields: ClassVar[Tuple[str, ...]] = ("project_code",)

    def __init__(
        self,
        cache: CacheStore,
        client_factory: QaseClientFactory = create_qase_client,
        ttl_seconds: Optional[int] = None,
    ):
        self.cache = cache
        self.client_factory = client_factory
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else self.default_ttl()

    @classmethod
    @abstractmethod
    def default_ttl(cls) -> int:
        """TTL for cached payloads of this resource kind"""

    @abstractmethod
    async def fetch(self, client: QaseClient, params: InputT) -> QaseList:
        """Call the Qase API for ``params``"""

    @abstractmethod
    def normalize(self, raw: QaseList, params: InputT) -> ResultT:
        """Map a raw paginated payload to the tool result"""

    @abstractmethod
    def failure(self, params: InputT, message: str, kind: ErrorKind) -> ResultT:
        """Empty result carrying an error"""

    def filter_payload(self, params: InputT) -> Dict[str, Any]:
        return params.model_dump(exclude=set(self.scope_fields), mode="json")

    def cache_key(self, user_id: str, params: InputT) -> str:
        return build_cache_key(
            self.resource_kind,
            user_id,
            project_code=getattr(params, "project_code", None),
            run_id=getattr(params, "run_id", None),
            fingerprint=filter_fingerprint(self.filter_payload(params)),
        )

    async def _read_cache(self, key: str) -> Optional[QaseList]:
        try:
            payload = await self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if payload is None:
            return None
        try:
            return self.raw_model.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed cache entry {key}: {e}")
            return None

    async def _write_cache(self, key: str, raw: QaseList) -> None:
        try:
            await self.cache.set(key, raw.model_dump(mode="json"), self.ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def fetch_with_cache(
        self,
        token: str,
        user_id: str,
        params: Union[InputT, Mapping[str, Any]],
    ) -> ResultT:
        params = self.parse_arguments(params)
        key = self.cache_key(user_id, params)

        cached = await self._read_cache(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            result = self.normalize(cached, params)
            result.cached = True
            return result

        logger.debug(f"Cache miss: {key}")
        try:
            async with self.client_factory(token) as client:
                raw = await self.fetch(client, params)
            result = self.normalize(raw, params)
        except QaseAuthError:
            logger.error(f"{self.name.value}: Qase authentication failed for user {user_id}")
            return self.failure(params, TOOL_AUTH_ERROR, "auth")
        except QaseApiError as e:
            logger.error(f"{self.name.value}: Qase API error {e.status_code}: {e.message}")
            return self.failure(params, e.message, "api")
        except Exception:
            logger.exception(f"{self.name.value}: unexpected error fetching {self.resource_label}")
            return self.failure(params, f"Failed to get {self.resource_label}. Please try again.", "unknown")

        await self._write_cache(key, raw)
        result.cached = False
        return result

    async def invoke(self, token: str, user_id: str, arguments: Mapping[str, Any]) -> ToolResult:
        try:
            params = self.parse_arguments(arguments)
        except ValidationError as e:
            return self._argument_error(e)
        return await self.fetch_with_cache(token, user_id, params)
