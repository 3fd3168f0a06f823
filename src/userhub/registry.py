"""
Capability registry: the host's table of resources, resource templates,
tools and prompts.

Each capability kind is its own namespace. Descriptors are registered
once when a session connects and never change afterwards. Invocation
goes through :meth:`CapabilityRegistry.invoke`, which checks and coerces
arguments before the handler runs and turns any handler exception into
a failed :class:`InvocationResult`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional

from . import uri_template
from .errors import (
    ArgumentMissingError,
    ArgumentTypeError,
    DuplicateNameError,
    NotFoundError,
)
from .models import CapabilityAnnotations, CapabilityKind

logger = logging.getLogger("userhub.registry")

Handler = Callable[..., Awaitable[list[Any]]]

RESOURCE_KINDS = (CapabilityKind.RESOURCE, CapabilityKind.RESOURCE_TEMPLATE)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes", "y"):
        return True
    if text in ("false", "0", "no", "n"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


COERCERS: dict[str, Callable[[Any], Any]] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": _to_bool,
}


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of one handler call: content blocks, or an error message."""

    content: list[Any] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, content: list[Any]) -> InvocationResult:
        return cls(content=list(content))

    @classmethod
    def failure(cls, message: str) -> InvocationResult:
        return cls(error=message)


@dataclass(frozen=True)
class CapabilityDescriptor:
    """A named, schema-described capability and its handler.

    Tool and prompt handlers are called as ``handler(arguments)``;
    resource and template handlers as ``handler(uri, params)``.

    Args:
        name: Unique within its kind.
        kind: Which capability variant this is.
        handler: Async callable producing the content blocks.
        schema: Ordered argument name -> primitive type
            (``string``, ``integer``, ``number`` or ``boolean``).
        required: Names that must be supplied. Defaults to every
            argument in *schema*.
        uri: Literal URI or URI template, for resource kinds.
        mime_type: Payload type of resource contents.
        annotations: Title, description and behaviour hints.
    """

    name: str
    kind: CapabilityKind
    handler: Handler
    schema: Mapping[str, str] = field(default_factory=dict)
    required: Optional[tuple[str, ...]] = None
    uri: Optional[str] = None
    mime_type: str = "application/json"
    annotations: CapabilityAnnotations = field(default_factory=CapabilityAnnotations)

    @property
    def title(self) -> str:
        return self.annotations.title or self.name

    @property
    def description(self) -> str:
        return self.annotations.description

    @property
    def required_arguments(self) -> tuple[str, ...]:
        if self.required is None:
            return tuple(self.schema)
        return self.required

    def input_schema(self) -> dict[str, Any]:
        """JSON schema object describing the declared arguments."""
        return {
            "type": "object",
            "properties": {name: {"type": kind} for name, kind in self.schema.items()},
            "required": list(self.required_arguments),
        }


class CapabilityRegistry:
    """Per-session table of capability descriptors, keyed by kind and name."""

    def __init__(self) -> None:
        self._tables: dict[CapabilityKind, dict[str, CapabilityDescriptor]] = {
            kind: {} for kind in CapabilityKind
        }

    def register(self, descriptor: CapabilityDescriptor) -> CapabilityDescriptor:
        """Add a descriptor.

        Raises:
            DuplicateNameError: If the name is taken within the kind.
        """
        table = self._tables[descriptor.kind]
        if descriptor.name in table:
            raise DuplicateNameError(
                f"{descriptor.kind.value} '{descriptor.name}' is already registered"
            )
        if descriptor.kind in RESOURCE_KINDS and not descriptor.uri:
            raise ValueError(f"{descriptor.kind.value} '{descriptor.name}' needs a uri")
        table[descriptor.name] = descriptor
        logger.debug("Registered %s '%s'", descriptor.kind.value, descriptor.name)
        return descriptor

    def list(self, kind: CapabilityKind) -> list[CapabilityDescriptor]:
        """All descriptors of *kind*, in registration order."""
        return list(self._tables[kind].values())

    def resolve(self, kind: CapabilityKind, name: str) -> CapabilityDescriptor:
        """Look up a descriptor by kind and name.

        Raises:
            NotFoundError: If nothing of that kind has that name.
        """
        try:
            return self._tables[kind][name]
        except KeyError:
            raise NotFoundError(f"Unknown {kind.value}: {name}") from None

    def match_resource(self, uri: str) -> tuple[CapabilityDescriptor, dict[str, str]]:
        """Find the resource serving a concrete URI.

        Static resources are matched exactly, before any template.

        Returns:
            The descriptor and the placeholder values taken from *uri*.

        Raises:
            NotFoundError: If no resource or template matches.
        """
        for descriptor in self.list(CapabilityKind.RESOURCE):
            if descriptor.uri == uri:
                return descriptor, {}
        for descriptor in self.list(CapabilityKind.RESOURCE_TEMPLATE):
            params = uri_template.match(descriptor.uri, uri)
            if params is not None:
                return descriptor, params
        raise NotFoundError(f"Unknown resource: {uri}")

    def coerce_arguments(
        self,
        descriptor: CapabilityDescriptor,
        arguments: Optional[Mapping[str, Any]],
    ) -> dict[str, Any]:
        """Check required arguments and coerce declared ones to their types.

        Undeclared arguments are dropped.

        Raises:
            ArgumentMissingError: If a required argument is absent.
            ArgumentTypeError: If a value does not fit its declared type.
        """
        arguments = arguments or {}
        missing = [
            name for name in descriptor.required_arguments
            if arguments.get(name) is None
        ]
        if missing:
            raise ArgumentMissingError(
                f"{descriptor.name}: missing argument(s) {', '.join(missing)}"
            )

        coerced: dict[str, Any] = {}
        for name, kind in descriptor.schema.items():
            if arguments.get(name) is None:
                continue
            convert = COERCERS.get(kind, str)
            try:
                coerced[name] = convert(arguments[name])
            except (TypeError, ValueError) as exc:
                raise ArgumentTypeError(
                    f"{descriptor.name}: '{name}' is not a valid {kind}: {exc}"
                ) from exc
        return coerced

    async def invoke(
        self,
        descriptor: CapabilityDescriptor,
        arguments: Optional[Mapping[str, Any]] = None,
        uri: Optional[str] = None,
    ) -> InvocationResult:
        """Run a capability's handler.

        Args:
            descriptor: A registered descriptor.
            arguments: Tool/prompt arguments, or placeholder values for a
                resource template.
            uri: Concrete URI being read, for resource kinds. Defaults to
                the descriptor's own URI.

        Returns:
            The handler's content, or a failure carrying the exception text.

        Raises:
            ArgumentMissingError: Before the handler runs, if a required
                argument is absent.
            ArgumentTypeError: Before the handler runs, on a bad value.
        """
        resource = descriptor.kind in RESOURCE_KINDS
        if resource:
            params = dict(arguments or {})
        else:
            params = self.coerce_arguments(descriptor, arguments)

        try:
            if resource:
                content = await descriptor.handler(uri or descriptor.uri, params)
            else:
                content = await descriptor.handler(params)
        except Exception as exc:
            logger.exception("%s '%s' failed", descriptor.kind.value, descriptor.name)
            return InvocationResult.failure(str(exc) or type(exc).__name__)
        return InvocationResult.success(content)
