"""
Tool Declarations
=================
Function declarations exposed to the structured provider by personas.
Schemas use the provider's OpenAPI-style type names.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolDeclaration:
    """A declared function the model may call"""

    name: str
    description: str
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def to_function_declaration(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": dict(self.parameters),
        }


def function_declarations(tools: Iterable[ToolDeclaration]) -> list[dict[str, Any]]:
    return [tool.to_function_declaration() for tool in tools]


RENDER_CHART = ToolDeclaration(
    name="renderChart",
    description="Renders a visual chart (Bar, Line, Pie) to visualize performance data.",
    parameters={
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "chartType": {"type": "STRING", "enum": ["bar", "line", "pie"]},
            "data": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "name": {"type": "STRING"},
                        "value": {"type": "NUMBER"},
                        "label": {"type": "STRING"},
                    },
                },
            },
            "xAxisLabel": {"type": "STRING"},
        },
        "required": ["title", "chartType", "data"],
    },
)

CREATE_ACTION_PLAN = ToolDeclaration(
    name="createActionPlan",
    description="Creates an interactive study checklist or action plan.",
    parameters={
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "items": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "task": {"type": "STRING"},
                        "priority": {
                            "type": "STRING",
                            "enum": ["High", "Medium", "Low"],
                        },
                    },
                },
            },
        },
        "required": ["title", "items"],
    },
)

RENDER_DIAGRAM = ToolDeclaration(
    name="renderDiagram",
    description=(
        "Generates an SVG diagram to visualize a scientific concept "
        "(Physics, Math, Geometry)."
    ),
    parameters={
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "svgContent": {
                "type": "STRING",
                "description": "Valid, self-contained SVG code starting with <svg> tag.",
            },
            "description": {"type": "STRING"},
        },
        "required": ["title", "svgContent"],
    },
)

CREATE_MIND_MAP = ToolDeclaration(
    name="createMindMap",
    description="Creates a hierarchical mind map for concept linkage.",
    parameters={
        "type": "OBJECT",
        "properties": {
            "root": {
                "type": "OBJECT",
                "properties": {
                    "label": {"type": "STRING"},
                    "children": {"type": "ARRAY", "items": {"type": "OBJECT"}},
                },
                "required": ["label"],
            },
        },
        "required": ["root"],
    },
)

ANALYTIC_TOOLS: tuple[ToolDeclaration, ...] = (RENDER_CHART,)
PLANNING_TOOLS: tuple[ToolDeclaration, ...] = (CREATE_ACTION_PLAN,)
EDUCATIONAL_TOOLS: tuple[ToolDeclaration, ...] = (RENDER_DIAGRAM, CREATE_MIND_MAP)
