"""
Resource registry for dependency injection.

This module provides the ResourceRegistry class, which maps string keys
to shared values (typically execution environment handles) so that task
bodies can look them up by name instead of constructing them.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar, overload

from scabbard.errors import ConfigurationError, NotFoundError, TypeMismatchError
from scabbard.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

ResourceFactory = Callable[[], Any]

# Expected type for lookup: a class, a tuple of classes, or a runtime_checkable Protocol
ExpectedType = type | tuple[type, ...]


class ResourceRegistry:
    """
    Registry of named resources.

    Values are stored as-is and returned by identity; the registry never
    copies or mutates them. Lookups check the stored value against the
    caller's expected type, since storage itself is untyped.

    Supports:
    - Values registered directly
    - Lazy providers (factory called once, on first lookup)

    Example:
        registry = ResourceRegistry()

        # Register a value
        registry.register("with_cargo", environment)

        # Register a lazy provider
        @registry.provider("settings")
        def load_settings():
            return Settings.from_env()

        # Look up with a type check
        env = registry.lookup("with_cargo", DockerEnvironment)
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._providers: dict[str, ResourceFactory] = {}

    def register(self, key: str, value: Any) -> None:
        """
        Register a resource value, replacing any earlier value or provider.

        Args:
            key: The resource key
            value: The resource
        """
        if self.has(key):
            logger.warning("resource_overwritten", key=key)

        self._providers.pop(key, None)
        self._values[key] = value
        logger.debug("resource_registered", key=key)

    def provide(self, key: str, factory: ResourceFactory) -> None:
        """
        Register a lazy resource provider.

        The factory is called on the first lookup of ``key`` and its
        result is cached. If the factory raises, nothing is cached and
        the exception propagates to the caller of lookup.

        Args:
            key: The resource key
            factory: Zero-argument callable producing the resource
        """
        if self.has(key):
            logger.warning("resource_overwritten", key=key)

        self._values.pop(key, None)
        self._providers[key] = factory
        logger.debug("resource_registered", key=key, lazy=True)

    def provider(self, key: str) -> Callable[[ResourceFactory], ResourceFactory]:
        """
        Decorator to register a function as a lazy resource provider.

        Args:
            key: The resource key

        Returns:
            Decorator function
        """

        def decorator(factory: ResourceFactory) -> ResourceFactory:
            self.provide(key, factory)
            return factory

        return decorator

    @overload
    def lookup(self, key: str, expected_type: type[T]) -> T: ...

    @overload
    def lookup(self, key: str, expected_type: tuple[type, ...] | None = None) -> Any: ...

    def lookup(self, key: str, expected_type: ExpectedType | None = None) -> Any:
        """
        Look up a resource by key.

        Args:
            key: The resource key
            expected_type: Class, tuple of classes, or runtime_checkable
                Protocol the value must be an instance of. None skips the check.

        Returns:
            The registered value (same object, not a copy)

        Raises:
            NotFoundError: If nothing is registered under key
            TypeMismatchError: If the value is not an instance of expected_type
            ConfigurationError: If expected_type cannot be used with isinstance,
                e.g. ``list[int]`` or a Protocol without @runtime_checkable
        """
        if key in self._values:
            value = self._values[key]
        elif key in self._providers:
            value = self._providers[key]()
            self._providers.pop(key, None)
            self._values[key] = value
            logger.debug("resource_resolved", key=key)
        else:
            raise NotFoundError(key)

        if expected_type is not None and not _is_instance(key, value, expected_type):
            raise TypeMismatchError(key, expected_type, type(value))

        return value

    def has(self, key: str) -> bool:
        """Check if a resource or provider is registered."""
        return key in self._values or key in self._providers

    def keys(self) -> list[str]:
        """Get all registered resource keys."""
        return [*self._values, *(k for k in self._providers if k not in self._values)]

    def clear(self) -> None:
        """Clear all registrations."""
        self._values.clear()
        self._providers.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        return len(self.keys())


def _is_instance(key: str, value: Any, expected_type: ExpectedType) -> bool:
    try:
        return isinstance(value, expected_type)
    except TypeError as e:
        raise ConfigurationError(
            f"Cannot check resource '{key}' against {expected_type!r}; "
            "use a class, a tuple of classes or a @runtime_checkable Protocol",
            cause=e,
        ) from e
