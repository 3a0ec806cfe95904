from __future__ import annotations

import inspect
import logging
import sys
import threading
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    ForwardRef,
    TypeVar,
    get_args,
    get_origin,
    get_type_hints,
    overload,
)

from ._markers import PREFERRED, constructor_marker, describe, is_inject_marker, is_null_factory


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ._markers import Factory

    T = TypeVar("T")

    Key = type[Any] | str

_MISSING = object()

# Annotations whose no-argument call gives a usable empty value
_ZERO_VALUE_TYPES = (bool, int, float, complex, str, bytes, tuple, list, dict, set, frozenset)


class ResolutionError(RuntimeError):
    pass


class UnknownDependencyError(ResolutionError):
    """Raised for a type that is not a service, or a token that was never set."""


class AmbiguousConstructionError(ResolutionError):
    """Raised when a class has several constructors and not exactly one is marked `construct_with`."""


class Container:
    """Container instance.

    - builds services declared with `@service`, wiring constructor parameters and
      `Annotated[T, Inject]` fields recursively
    - caches singleton services, rebuilds transient ones on every `get`
    - keeps a separate store of values addressed by string tokens.

    Containers are isolated from each other: a dependency is always resolved
    by the container the request started in.
    """

    def __init__(self) -> None:
        self._instances: dict[type, object] = {}
        self._values: dict[str, object] = {}
        self._lock = threading.RLock()
        self._construction_locks: dict[type, threading.RLock] = {}

    @overload
    def get(self, key: str) -> Any: ...

    @overload
    def get(self, key: type[T]) -> T: ...

    @overload
    def get(self, key: type[T], singleton: bool, factory: Factory[T] | None = ...) -> T: ...

    def get(self, key: Key, singleton: bool | None = None, factory: Factory[Any] | None = None) -> Any:
        """Resolve a service type or a stored value.

        - `get("token")` returns the value stored with `set("token", value)`.
        - `get(cls)` reads the service declaration of `cls`.
        - `get(cls, singleton, factory)` skips the declaration and uses the given
          configuration; `factory=None` means reflective construction.
        """
        if isinstance(key, str):
            if singleton is not None or factory is not None:
                msg = "`singleton` and `factory` only apply to type keys."
                raise TypeError(msg)
            return self._get_value(key)

        if singleton is None:
            if factory is not None:
                msg = "Pass `singleton` explicitly when supplying a factory."
                raise TypeError(msg)
            return self._get_service(key)

        return self._get_instance(key, singleton=singleton, factory=factory)

    def _get_value(self, token: str) -> Any:
        with self._lock:
            value = self._values.get(token, _MISSING)

        if value is _MISSING:
            msg = f"Unknown dependency: {token!r}"
            raise UnknownDependencyError(msg)

        return value

    def _get_service(self, cls: type[T]) -> T:
        descriptor = describe(cls)
        if descriptor is None:
            name = getattr(cls, "__qualname__", repr(cls))
            msg = f"{name} is not a service"
            raise UnknownDependencyError(msg)

        factory = None
        if not is_null_factory(descriptor.factory):
            factory = descriptor.factory()

        return self._get_instance(cls, singleton=descriptor.singleton, factory=factory)

    def _get_instance(self, cls: type[T], *, singleton: bool, factory: Factory[T] | None) -> T:
        if not singleton:
            return self.create_instance(cls, factory)

        with self._lock:
            if cls in self._instances:
                return self._instances[cls]  # type: ignore[return-value]
            construction_lock = self._construction_locks.setdefault(cls, threading.RLock())

        # One builder per type; others wait and pick up the cached instance
        with construction_lock:
            with self._lock:
                if cls in self._instances:
                    return self._instances[cls]  # type: ignore[return-value]

            instance = self.create_instance(cls, factory)

            with self._lock:
                self._instances[cls] = instance
            logger.debug("Cached singleton %s", cls.__qualname__)

        return instance

    def create_instance(self, cls: type[T], factory: Factory[T] | None = None) -> T:
        """Build a new instance of `cls`, bypassing the cache.

        A custom factory is fully responsible for the instance: its result is
        returned without field injection.
        """
        if not is_null_factory(factory):
            logger.debug("Creating %s with factory %s", cls.__qualname__, type(factory).__qualname__)
            return factory.create()  # type: ignore[union-attr]

        instance = Constructor(self).construct(cls)
        FieldInjector(self).inject(cls, instance)
        return instance

    @overload
    def set(self, key: str, value: object) -> None: ...

    @overload
    def set(self, key: type[T], value: T) -> None: ...

    def set(self, key: Key, value: object) -> None:
        """Store a value under a token, or pre-seed the instance of a type."""
        with self._lock:
            if isinstance(key, str):
                self._values[key] = value
            else:
                self._instances[key] = value

    def has(self, key: Key) -> bool:
        with self._lock:
            if isinstance(key, str):
                return key in self._values
            return key in self._instances

    def remove(self, key: Key) -> None:
        """Drop a stored value or cached instance. Missing keys are ignored."""
        with self._lock:
            if isinstance(key, str):
                self._values.pop(key, None)
            else:
                self._instances.pop(key, None)

    def reset(self) -> None:
        """Remove every cached instance, stored value and construction lock."""
        with self._lock:
            self._instances.clear()
            self._values.clear()
            self._construction_locks.clear()


class Constructor:
    def __init__(self, resolver: Container) -> None:
        self._resolver = resolver

    def construct(self, cls: type[T]) -> T:
        name, _ = self.select(cls)

        if name == "__init__":
            if cls.__init__ is object.__init__:
                return cls()
            call: Any = cls
            func: Any = cls.__init__
        else:
            call = getattr(cls, name)
            func = getattr(call, "__func__", call)

        try:
            sig = inspect.signature(func)
        except (TypeError, ValueError):
            # builtin initializers without introspectable signatures
            return call()

        params = list(sig.parameters.values())
        if name == "__init__" or isinstance(inspect.getattr_static(cls, name), classmethod):
            params = params[1:]  # self / cls

        hints = _get_type_hints(func, owner=cls)
        args, kwargs = self._build_arguments(params, hints)

        logger.debug("Constructing %s via %s", cls.__qualname__, name)
        return call(*args, **kwargs)

    def candidates(self, cls: type) -> list[tuple[str, Any]]:
        """Constructors declared by `cls`, as `(name, member)` pairs.

        `__init__` counts when the class declares it, or when it declares no
        alternate constructor (the inherited initializer is then the default one).
        Markers on plain methods are rejected: they cannot build the class.
        """
        for name, member in cls.__dict__.items():
            if inspect.isfunction(member) and name != "__init__" and constructor_marker(member) is not None:
                msg = (
                    f"{cls.__qualname__}.{name} is marked as a constructor but is not "
                    f"__init__, a classmethod or a staticmethod."
                )
                raise AmbiguousConstructionError(msg)

        alternates = [
            (name, member)
            for name, member in cls.__dict__.items()
            if isinstance(member, (classmethod, staticmethod)) and constructor_marker(member) is not None
        ]

        if "__init__" in cls.__dict__ or not alternates:
            return [("__init__", cls.__init__), *alternates]
        return alternates

    def select(self, cls: type) -> tuple[str, Any]:
        candidates = self.candidates(cls)
        if len(candidates) == 1:
            return candidates[0]

        preferred = [(name, member) for name, member in candidates if constructor_marker(member) == PREFERRED]
        if len(preferred) != 1:
            names = ", ".join(name for name, _ in candidates)
            msg = (
                f"{cls.__qualname__} declares {len(candidates)} constructors ({names}); "
                f"exactly one must be marked with @construct_with, found {len(preferred)}."
            )
            raise AmbiguousConstructionError(msg)

        return preferred[0]

    def _build_arguments(
        self, params: list[inspect.Parameter], hints: dict[str, Any]
    ) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        for p in params:
            # never filled
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                continue

            value = self._resolve_param(p, hints.get(p.name, p.annotation))
            if p.kind is p.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[p.name] = value

        return args, kwargs

    def _resolve_param(self, p: inspect.Parameter, annotation: Any) -> Any:
        """Service-typed parameters are resolved, everything else gets an empty value.

        Empty value precedence:
        1. declared default
        2. zero value of a builtin annotation (0, "", [], ...)
        3. None.
        """
        if describe(annotation) is not None:
            return self._resolver.get(annotation)

        if p.default is not inspect.Parameter.empty:
            return p.default

        if any(annotation is tp for tp in _ZERO_VALUE_TYPES):
            return annotation()

        return None


class FieldInjector:
    def __init__(self, resolver: Container) -> None:
        self._resolver = resolver

    def inject(self, cls: type[T], instance: T) -> None:
        for name, field_type in self.injectable_fields(cls):
            # bypasses frozen dataclasses and custom __setattr__
            object.__setattr__(instance, name, self._resolver.get(field_type))

    def injectable_fields(self, cls: type) -> list[tuple[str, Any]]:
        """Fields declared on `cls` itself whose first annotation marker is `Inject`.

        Only the first metadata item of `Annotated[...]` is inspected, so
        `Annotated[Repo, Other, Inject]` is not injected. Each annotation is
        evaluated on its own, so an unresolvable sibling or base class
        annotation does not hide the marked fields.
        """
        fields = []
        for name, annotation in _declared_annotations(cls).items():
            hint = _field_hint(cls, name, annotation)
            if get_origin(hint) is not Annotated:
                continue

            field_type, *markers = get_args(hint)
            if not is_inject_marker(markers[0]):
                continue

            fields.append((name, field_type))

        return fields


def _declared_annotations(cls: type) -> dict[str, Any]:
    try:
        return inspect.get_annotations(cls)
    except NameError:
        # Python 3.14+ evaluates lazily; keep unresolvable names as forward references
        if sys.version_info < (3, 14):
            raise
        import annotationlib  # noqa: PLC0415

        return inspect.get_annotations(cls, format=annotationlib.Format.FORWARDREF)


def _field_hint(cls: type, name: str, annotation: Any) -> Any:
    """Evaluate a single field annotation, or None when it cannot carry `Inject`."""
    if isinstance(annotation, str):
        if "Annotated" not in annotation:
            return None
    elif get_origin(annotation) is not Annotated:
        return None
    elif not isinstance(get_args(annotation)[0], (str, ForwardRef)):
        return annotation

    def holder() -> None: ...

    holder.__annotations__ = {name: annotation}
    module = sys.modules.get(cls.__module__)

    try:
        hints = get_type_hints(
            holder,
            globalns=getattr(module, "__dict__", None),
            localns=dict(vars(cls)),
            include_extras=True,
        )
    except NameError as exc:
        logger.warning("Cannot resolve %s.%s field hint, skipping injection: %s", cls.__qualname__, name, exc)
        return None

    return hints[name]


def _get_type_hints(func: Any, owner: type) -> dict[str, Any]:
    try:
        hints = get_type_hints(func)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, owner.__name__, owner.__qualname__)
        hints = {}

    return hints
