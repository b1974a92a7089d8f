"""
DI - a small service container.

The server registers its singletons (database, cache, token manager,
password hasher, services) once at startup; controllers resolve them per
request through ``ctx.container``.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, Type, TypeVar, Union

logger = logging.getLogger("fastpurchase.di")

T = TypeVar("T")

Token = Union[Type[Any], str]


class ProviderNotFoundError(LookupError):
    """Raised when resolving a token nothing was registered for."""

    def __init__(self, token: Token):
        self.token = token
        super().__init__(f"No provider registered for {_token_key(token)}")


def _token_key(token: Token) -> str:
    if isinstance(token, str):
        return token
    return f"{token.__module__}.{token.__qualname__}"


class Container:
    """
    Singleton container.

    Providers are either a ready instance or a zero-argument factory. A
    factory runs on first resolution and its result is cached.

    Example:
        >>> container = Container()
        >>> container.register_instance(CacheService, cache)
        >>> container.register_factory(OrderEngine, lambda: OrderEngine(db, cache))
        >>> engine = container.resolve(OrderEngine)
    """

    __slots__ = ("_instances", "_factories")

    def __init__(self):
        self._instances: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[[], Any]] = {}

    def register_instance(self, token: Token, instance: Any) -> None:
        key = _token_key(token)
        self._instances[key] = instance
        self._factories.pop(key, None)
        logger.debug(f"Registered instance for {key}")

    def register_factory(self, token: Token, factory: Callable[[], Any]) -> None:
        key = _token_key(token)
        self._factories[key] = factory
        self._instances.pop(key, None)
        logger.debug(f"Registered factory for {key}")

    def resolve(self, token: Type[T] | str) -> T:
        """
        Resolve a provider.

        Raises:
            ProviderNotFoundError: If nothing is registered for ``token``
            TypeError: If the factory returns an awaitable
        """
        key = _token_key(token)
        if key in self._instances:
            return self._instances[key]
        factory = self._factories.get(key)
        if factory is not None:
            instance = factory()
            if inspect.isawaitable(instance):
                if inspect.iscoroutine(instance):
                    instance.close()
                raise TypeError(f"Factory for {key} must be synchronous")
            self._instances[key] = instance
            return instance
        raise ProviderNotFoundError(token)

    def __len__(self) -> int:
        return len(self._instances) + len(self._factories)

    def __repr__(self) -> str:
        return f"<Container providers={len(self)}>"
