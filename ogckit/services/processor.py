"""Processes that the service can describe and execute."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from starlette.responses import PlainTextResponse, Response

_GREETER_INPUTS = {
    "title": "GreeterInputs",
    "description": "Inputs for the `greet` process",
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"description": "Name to be greeted", "type": "string"},
    },
}

_GREETER_OUTPUTS = {
    "title": "GreeterOutputs",
    "description": "Outputs for the `greet` process",
    "type": "string",
}


class Processor(ABC):
    """A process that can be listed, described and executed."""

    @abstractmethod
    def id(self) -> str:
        """Return the process id, unique within the service."""

    @abstractmethod
    def process(self) -> dict[str, Any]:
        """Return the process description."""

    @abstractmethod
    async def execute(self, execute: dict[str, Any], state: Any, url: str) -> Response:
        """Run the process and return the response."""


class Greeter(Processor):
    """Example process that greets the given name."""

    def id(self) -> str:
        return "greet"

    def process(self) -> dict[str, Any]:
        return {
            "id": self.id(),
            "version": "0.1.0",
            "jobControlOptions": ["sync-execute"],
            "outputTransmission": ["value"],
            "links": [],
            "inputs": dict(_GREETER_INPUTS),
            "outputs": dict(_GREETER_OUTPUTS),
        }

    async def execute(self, execute: dict[str, Any], state: Any, url: str) -> Response:
        inputs = execute.get("inputs") if isinstance(execute, dict) else None
        name = inputs.get("name") if isinstance(inputs, dict) else None
        if not isinstance(name, str):
            raise ValueError("the `greet` process needs a string input `name`")
        return PlainTextResponse(f"Hello, {name}!\n")