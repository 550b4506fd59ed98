"""Tool server base classes shared by the HTTP surface and LLM tool calling."""

import json
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class ToolParameter(BaseModel):
    """One argument of a tool, rendered as a JSON schema property."""

    name: str
    type: str
    description: str
    required: bool = True
    default: Any = None
    enum: list[str] | None = None

    def json_schema(self) -> dict:
        schema: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.default is not None:
            schema["default"] = self.default
        return schema


class ToolDef(BaseModel):
    """A callable tool with its argument list."""

    name: str
    description: str
    parameters: list[ToolParameter]
    category: str | None = None

    def parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {p.name: p.json_schema() for p in self.parameters},
            "required": [p.name for p in self.parameters if p.required],
        }

    def to_openai_format(self) -> dict:
        """Function-calling format used by OpenAI-compatible clients."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }

    def to_anthropic_format(self) -> dict:
        """Tool format with a top-level ``input_schema``."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters_schema(),
        }


class ToolResult(BaseModel):
    """Outcome of a tool call."""

    success: bool
    data: Any = None
    error: str | None = None

    def to_string(self) -> str:
        """Render the result as text for a model's context window.

        Build reports and status payloads are dicts and come out as indented JSON.
        """
        if not self.success:
            return f"Error: {self.error}"
        if isinstance(self.data, str):
            return self.data
        if isinstance(self.data, dict):
            return json.dumps(self.data, indent=2, default=str)
        if isinstance(self.data, list):
            return "\n\n".join(str(item) for item in self.data)
        return str(self.data)


class MCPServer(ABC):
    """A named set of tools dispatched by ``call_tool``."""

    @abstractmethod
    def list_tools(self) -> list[ToolDef]:
        pass

    @abstractmethod
    def call_tool(self, name: str, args: dict[str, Any]) -> ToolResult:
        """Run a tool; failures come back as ``ToolResult(success=False)``."""
        pass

    def get_tool(self, name: str) -> ToolDef | None:
        return next((tool for tool in self.list_tools() if tool.name == name), None)
