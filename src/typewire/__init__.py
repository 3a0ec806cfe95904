"""Annotation-driven dependency injection container.

Classes marked with `@service` are built, wired and cached on demand: constructor
parameters typed with other services are resolved recursively, and fields
annotated `Annotated[T, Inject]` are filled after construction.

Exports:
- `Container`: Resolves services (singleton or transient) and stores token values.
- `Registry`: Named containers plus a default one, passed around explicitly.
- `service`, `constructor`, `construct_with`, `Inject`: Declaration markers.
- `Factory`, `NullFactory`: Custom creation strategy and its "no factory" sentinel.
- `ResolutionError`, `UnknownDependencyError`, `AmbiguousConstructionError`: Errors.
"""

from ._container import (
    AmbiguousConstructionError,
    Container,
    ResolutionError,
    UnknownDependencyError,
)
from ._markers import (
    Factory,
    Inject,
    NullFactory,
    ServiceDescriptor,
    construct_with,
    constructor,
    describe,
    service,
)
from ._registry import Registry


__all__ = [
    "AmbiguousConstructionError",
    "Container",
    "Factory",
    "Inject",
    "NullFactory",
    "Registry",
    "ResolutionError",
    "ServiceDescriptor",
    "UnknownDependencyError",
    "construct_with",
    "constructor",
    "describe",
    "service",
]
