"""
generate_chart - chart configuration embedded in the answer as a
``:::chart`` markdown block

The chat UI detects the block and renders it; this tool only builds the
configuration.
"""

import random
import string
import time
from datetime import datetime, timezone
from typing import Any, ClassVar, List, Literal, Mapping, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from qase_analytics.config.constants import DEFAULT_CHART_COLORS, STATUS_CHART_COLORS
from qase_analytics.tools.base import AgentTool, ToolName, ToolResult

ChartType = Literal["line", "bar", "pie", "donut", "area"]


class ChartModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DataPoint(ChartModel):
    name: str = Field(description="Label for this data point (e.g. date, status name)")
    value: float = Field(description="Primary numeric value")
    value2: Optional[float] = Field(default=None, description="Secondary value for multi-series charts")
    value3: Optional[float] = Field(default=None, description="Tertiary value for multi-series charts")


class SeriesConfig(ChartModel):
    data_key: str = Field(description="Key in each data point for this series ('value', 'value2', 'value3')")
    name: str = Field(description="Display name for this series in the legend")
    color: Optional[str] = Field(default=None, description="Hex color for this series, e.g. '#10b981'")


class GenerateChartInput(ChartModel):
    type: ChartType = Field(description="Type of chart to generate")
    title: str = Field(description="Title of the chart")
    description: Optional[str] = Field(default=None, description="Optional subtitle")
    data: List[DataPoint] = Field(min_length=1, description="Data points for the chart")
    series: Optional[List[SeriesConfig]] = Field(default=None, description="Series for multi-series line/bar/area charts")
    x_axis_label: Optional[str] = Field(default=None, description="Label for the X axis")
    y_axis_label: Optional[str] = Field(default=None, description="Label for the Y axis")
    show_legend: bool = Field(default=True, description="Whether to show the legend")
    show_tooltip: bool = Field(default=True, description="Whether to show tooltips on hover")
    colors: Optional[List[str]] = Field(default=None, description="Custom color palette (hex codes)")


class ChartConfig(ChartModel):
    id: str
    type: ChartType
    title: str
    description: Optional[str] = None
    data: List[DataPoint]
    series: Optional[List[SeriesConfig]] = None
    x_axis_label: Optional[str] = None
    y_axis_label: Optional[str] = None
    show_legend: bool = True
    show_tooltip: bool = True
    colors: List[str]
    created_at: str


class GenerateChartResult(ToolResult):
    chart: Optional[ChartConfig] = None
    markdown: Optional[str] = None

    def to_model_payload(self) -> str:
        # The model must copy the block into its answer verbatim
        if self.success and self.markdown:
            return self.markdown
        return super().to_model_payload()


def generate_chart_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"chart-{int(time.time() * 1000)}-{suffix}"


def chart_colors(data: List[DataPoint], custom_colors: Optional[List[str]] = None) -> List[str]:
    """Custom palette when given, else a semantic color per point name, else the default palette."""
    if custom_colors:
        return list(custom_colors)

    colors = []
    for index, point in enumerate(data):
        key = "_".join(point.name.lower().split())
        colors.append(STATUS_CHART_COLORS.get(key, DEFAULT_CHART_COLORS[index % len(DEFAULT_CHART_COLORS)]))
    return colors


def chart_markdown(chart: ChartConfig) -> str:
    return f"\n\n:::chart\n{chart.model_dump_json(by_alias=True, exclude_none=True)}\n:::\n\n"


def build_chart(params: GenerateChartInput) -> GenerateChartResult:
    chart = ChartConfig(
        id=generate_chart_id(),
        type=params.type,
        title=params.title,
        description=params.description,
        data=params.data,
        series=params.series,
        x_axis_label=params.x_axis_label,
        y_axis_label=params.y_axis_label,
        show_legend=params.show_legend,
        show_tooltip=params.show_tooltip,
        colors=chart_colors(params.data, params.colors),
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    return GenerateChartResult(chart=chart, markdown=chart_markdown(chart))


class GenerateChartTool(AgentTool[GenerateChartInput, GenerateChartResult]):
    name: ClassVar[ToolName] = ToolName.GENERATE_CHART
    description: ClassVar[str] = (
        "Generate a chart configuration to display in the chat. Use it when the user asks "
        "for a visualization, graph or chart.\n"
        "- pie/donut: proportions of a whole (e.g. result status distribution)\n"
        "- bar: comparing categories (e.g. cases per priority)\n"
        "- line/area: trends over time (e.g. pass rate per run)\n"
        "Status names (passed, failed, blocked, skipped...) get semantic colors automatically. "
        "IMPORTANT: include the returned :::chart block verbatim in your answer so it is displayed."
    )
    input_model = GenerateChartInput

    async def invoke(self, token: str, user_id: str, arguments: Mapping[str, Any]) -> GenerateChartResult:
        try:
            params = self.parse_arguments(arguments)
        except ValidationError as e:
            error = self._argument_error(e)
            return GenerateChartResult(success=False, error=error.error, error_kind="validation")

        result = build_chart(params)
        logger.debug(f"Generated {params.type} chart '{params.title}' with {len(params.data)} points")
        return result
