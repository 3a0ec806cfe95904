from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Protocol,
    TypeVar,
    overload,
)


if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

_SERVICE_ATTR = "__typewire_service__"
_CONSTRUCTOR_ATTR = "__typewire_constructor__"

# Values of the constructor marker attribute
ALTERNATE = "alternate"
PREFERRED = "preferred"


class Factory(Protocol[T_co]):
    """Creation strategy that replaces reflective construction for a service."""

    def create(self) -> T_co: ...


class NullFactory:
    """Placeholder meaning "no custom factory": the container builds the service itself."""

    def create(self) -> None:
        return None


def is_null_factory(factory: object) -> bool:
    """True for `None`, the `NullFactory` class, or any `NullFactory` instance."""
    if factory is None:
        return True
    if inspect.isclass(factory):
        return issubclass(factory, NullFactory)
    return isinstance(factory, NullFactory)


@dataclass(frozen=True)
class ServiceDescriptor:
    singleton: bool = False
    factory: type[Factory[Any]] = NullFactory


@overload
def service(cls: type[T], *, singleton: bool = ..., factory: type[Factory[Any]] | None = ...) -> type[T]: ...


@overload
def service(
    cls: None = ..., *, singleton: bool = ..., factory: type[Factory[Any]] | None = ...
) -> Callable[[type[T]], type[T]]: ...


def service(
    cls: type[T] | None = None,
    *,
    singleton: bool = False,
    factory: type[Factory[Any]] | None = None,
) -> Any:
    """Declare a class as a service.

    Example:
      @service
      class Repo: ...

      @service(singleton=True, factory=DbFactory)
      class Db: ...

      service(ThirdPartyClient, singleton=True)

    `singleton` caches one instance per container; otherwise every resolution
    builds a new one. `factory` names a zero-argument constructible class whose
    `create()` builds the instance instead of the container.
    """
    descriptor = ServiceDescriptor(singleton=singleton, factory=factory or NullFactory)

    def mark(target: type[T]) -> type[T]:
        if not inspect.isclass(target):
            msg = f"@service can only mark classes, got {target!r}"
            raise TypeError(msg)
        # Stored as a plain class attribute; lookups read the class __dict__ only
        setattr(target, _SERVICE_ATTR, descriptor)
        return target

    if cls is None:
        return mark
    return mark(cls)


def describe(cls: object) -> ServiceDescriptor | None:
    """Return the descriptor declared on `cls` itself, ignoring base classes."""
    if not inspect.isclass(cls):
        return None
    descriptor = cls.__dict__.get(_SERVICE_ATTR)
    if isinstance(descriptor, ServiceDescriptor):
        return descriptor
    return None


def _mark_constructor(target: Any, kind: str) -> Any:
    func = getattr(target, "__func__", target)  # unwrap classmethod / staticmethod
    if not callable(func):
        msg = f"Constructor markers apply to functions, classmethods or staticmethods, got {target!r}"
        raise TypeError(msg)
    setattr(func, _CONSTRUCTOR_ATTR, kind)
    return target


def constructor(target: Any) -> Any:
    """Declare a classmethod or staticmethod as an alternate constructor.

    An unmarked alternate constructor makes the class ambiguous unless one of
    its constructors carries `construct_with`.
    """
    return _mark_constructor(target, ALTERNATE)


def construct_with(target: Any) -> Any:
    """Mark the constructor the container uses when a class declares several.

    Applies to `__init__` or to an alternate constructor (classmethod or
    staticmethod), in which case it also declares it as a constructor.
    """
    return _mark_constructor(target, PREFERRED)


def constructor_marker(member: object) -> str | None:
    func = getattr(member, "__func__", member)
    return getattr(func, _CONSTRUCTOR_ATTR, None)


class Inject:
    """Field marker: `repo: Annotated[Repo, Inject]`.

    Both the class and its instances are recognized.
    """

    def __repr__(self) -> str:
        return "Inject"


def is_inject_marker(marker: object) -> bool:
    return marker is Inject or isinstance(marker, Inject)
