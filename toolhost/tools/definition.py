"""Tool definitions and argument parsing."""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from .context import ToolContext
from .errors import InvalidArgsError

# (context, parsed JSON arguments) -> result text, raising ToolError on failure
ToolExecutor = Callable[[ToolContext, Any], str]

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class ToolParam:
    """One parameter in a tool's JSON schema."""

    name: str
    description: str
    param_type: str = "string"
    items: Optional[str] = None

    def schema(self) -> dict:
        schema: dict[str, Any] = {"type": self.param_type, "description": self.description}
        if self.items is not None:
            schema["items"] = {"type": self.items}
        return schema


@dataclass(frozen=True)
class ToolDefinition:
    """A named tool: its schema plus the function that runs it."""

    name: str
    description: str
    executor: ToolExecutor
    params: tuple[ToolParam, ...] = ()
    required: tuple[str, ...] = field(default=())

    def function_schema(self) -> dict:
        """OpenAI-style function description for the model."""
        parameters: dict[str, Any] = {
            "type": "object",
            "properties": {param.name: param.schema() for param in self.params},
        }
        if self.required:
            parameters["required"] = list(self.required)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


def parse_args(model: type[ModelT], args: Any) -> ModelT:
    """Validate raw JSON arguments against a pydantic model.

    Raises
    ------
    InvalidArgsError
        If the arguments do not match the model.
    """
    try:
        return model.model_validate(args)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidArgsError(problems) from e
