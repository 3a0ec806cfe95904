from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._container import Container


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ._markers import Factory

    T = TypeVar("T")

    Key = type[Any] | str


class Registry:
    """Named containers plus one default container.

    Create one registry per application and pass it to the code that needs it:

      registry = Registry()
      registry.get(Service)             # default container
      registry.of("tests").get(Service)  # isolated named container
    """

    def __init__(self) -> None:
        self._containers: dict[str, Container] = {}
        self._default = Container()
        self._lock = threading.Lock()

    @property
    def default(self) -> Container:
        return self._default

    def of(self, name: str) -> Container:
        """Return the container called `name`, creating an empty one on first access."""
        with self._lock:
            container = self._containers.get(name)
            if container is None:
                container = Container()
                self._containers[name] = container
                logger.debug("Created container %r", name)
            return container

    @overload
    def get(self, key: str) -> Any: ...

    @overload
    def get(self, key: type[T]) -> T: ...

    @overload
    def get(self, key: type[T], singleton: bool, factory: Factory[T] | None = ...) -> T: ...

    def get(self, key: Key, singleton: bool | None = None, factory: Factory[Any] | None = None) -> Any:
        return self._default.get(key, singleton, factory)  # type: ignore[call-overload]

    def set(self, key: Key, value: object) -> None:
        self._default.set(key, value)

    def has(self, key: Key) -> bool:
        return self._default.has(key)

    def remove(self, key: Key) -> None:
        self._default.remove(key)

    def reset(self) -> None:
        """Reset the default container. Named containers are left untouched."""
        self._default.reset()
