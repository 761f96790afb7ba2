"""
Function registry: name → (handler, declaration).

The orchestrator never imports handlers directly. Everything the model may
call is registered here, declarations are read from here, and execution is
funnelled through ``execute_function`` so unknown names and handler crashes
become failed results instead of exceptions.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from src.schemas.function_schema import FunctionContext, FunctionResult

logger = logging.getLogger(__name__)

FunctionHandler = Callable[[Mapping[str, Any], FunctionContext], Awaitable[FunctionResult]]

CRITICAL_FUNCTIONS: tuple[str, ...] = (
    "guardar_informacion",
    "guardar_info_vehiculo",
    "guardar_info_cliente",
    "generar_cotizacion",
)


class UnknownFunctionError(KeyError):
    """Raised by ``get`` when a function name is not registered."""


@dataclass(frozen=True)
class RegisteredFunction:
    name: str
    handler: FunctionHandler
    definition: dict[str, Any]
    exposed: bool = True


class FunctionRegistry:
    """Holds every callable function and its JSON-schema declaration."""

    def __init__(self) -> None:
        self._functions: dict[str, RegisteredFunction] = {}
        self._calls: Counter[str] = Counter()
        self._successes: Counter[str] = Counter()
        self._unknown_calls = 0

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)

    def register(
        self,
        name: str,
        handler: FunctionHandler,
        definition: dict[str, Any],
        *,
        exposed: bool = True,
    ) -> None:
        """Register a handler. ``exposed=False`` keeps it out of the declarations sent to the model."""
        self._functions[name] = RegisteredFunction(name, handler, definition, exposed)
        logger.debug("Function registered: %s (exposed=%s)", name, exposed)

    def get(self, name: str) -> RegisteredFunction:
        try:
            return self._functions[name]
        except KeyError:
            raise UnknownFunctionError(
                f"Function '{name}' not registered. Available: {list(self._functions)}"
            ) from None

    def function_names(self, exposed_only: bool = False) -> list[str]:
        return [f.name for f in self._functions.values() if f.exposed or not exposed_only]

    def get_function_definitions(self) -> list[dict[str, Any]]:
        """Declarations of every exposed function, in the chat-completions tool format."""
        return [
            {"type": "function", "function": f.definition}
            for f in self._functions.values()
            if f.exposed
        ]

    async def execute_function(
        self, name: str, args: Mapping[str, Any], context: FunctionContext
    ) -> FunctionResult:
        """Run a registered handler. Never raises."""
        try:
            registered = self.get(name)
        except UnknownFunctionError:
            self._unknown_calls += 1
            logger.warning("Model called unknown function: %s", name)
            return FunctionResult(success=False, error=f"Función '{name}' no encontrada")

        self._calls[name] += 1

        try:
            result = await registered.handler(args, context)
        except Exception as exc:
            logger.exception("Function %s raised", name)
            return FunctionResult(
                success=False, error=f"Error interno ejecutando {name}: {exc}"
            )

        if result.success:
            self._successes[name] += 1
        logger.info(
            "Function %s executed: success=%s applied=%s",
            name,
            result.success,
            result.applied_fields,
        )
        return result

    def validate_functions(self) -> list[str]:
        """Return configuration problems; empty when the registry is usable."""
        errors: list[str] = []
        exposed = self.function_names(exposed_only=True)
        if not exposed:
            errors.append("No hay funciones disponibles")
        for name in CRITICAL_FUNCTIONS:
            if name not in exposed:
                errors.append(f"Función crítica '{name}' no disponible")
        return errors

    def get_usage_stats(self) -> dict[str, Any]:
        total = sum(self._calls.values()) + self._unknown_calls
        succeeded = sum(self._successes.values())
        return {
            "total_executions": total,
            "success_rate": round(succeeded / total, 2) if total else 0.0,
            "function_usage": dict(self._calls),
            "unknown_calls": self._unknown_calls,
        }
