"""
OpenAI Function Tool Models

Pydantic models for describing tools to the Realtime API in a type-safe way.
A descriptor is what the server sees in ``session.update``; the executable
action behind it is registered separately with the tool bridge.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ToolParameter(BaseModel):
    """Base model for tool parameters."""

    type: str
    description: Optional[str] = None
    enum: Optional[List[str]] = None
    default: Optional[Any] = None

    def model_dump(self, **kwargs):
        data = super().model_dump(**kwargs)
        # Remove fields that are None
        return {k: v for k, v in data.items() if v is not None}


class ToolParameters(BaseModel):
    """Model for tool parameters schema."""

    type: str = "object"
    properties: Dict[str, ToolParameter] = Field(default_factory=dict)
    required: Optional[List[str]] = None

    def model_dump(self, **kwargs):
        data = super().model_dump(**kwargs)
        data["properties"] = {
            key: param.model_dump() for key, param in self.properties.items()
        }
        if data.get("required") is None:
            data.pop("required", None)
        return data


class OpenAITool(BaseModel):
    """Model for OpenAI function tool definition."""

    type: str = "function"
    name: str
    description: str = ""
    parameters: ToolParameters = Field(default_factory=ToolParameters)

    def model_dump(self, **kwargs):
        data = super().model_dump(**kwargs)
        data["parameters"] = self.parameters.model_dump()
        return data

    @classmethod
    def from_schema(
        cls,
        name: str,
        description: str = "",
        parameters: Optional[Dict[str, Any]] = None,
    ) -> "OpenAITool":
        """Build a descriptor from a plain JSON-schema style parameters dict."""
        return cls(
            name=name,
            description=description,
            parameters=ToolParameters.model_validate(parameters or {}),
        )
