"""Scope catalog: the immutable, process-wide registry of scope handlers.

Usage:
    from scoped_backup.backup.catalog import get_scope_handler, get_backup_scopes

    handler = get_scope_handler("CONTENT")
    for item in get_backup_scopes():
        print(item.scope, item.depends_on)
"""

from types import MappingProxyType

from scoped_backup.backup.errors import UnknownScopeError
from scoped_backup.backup.models import BackupScope, ScopeDefinition
from scoped_backup.backup.scopes import (
    AnalyticsScope,
    AssetsScope,
    ContentScope,
    CoreBaseScope,
    OpsLogsScope,
    ScopeHandler,
)


def dependency_order(dependencies: dict[BackupScope, tuple[BackupScope, ...]]) -> list[BackupScope]:
    """Topological order of scopes, dependencies first.

    Raises:
        ValueError: If a dependency is undeclared or the graph has a cycle.
    """
    ordered: list[BackupScope] = []
    visited: set[BackupScope] = set()
    visiting: set[BackupScope] = set()  # For cycle detection

    def visit(scope: BackupScope) -> None:
        if scope in visited:
            return
        if scope in visiting:
            raise ValueError(f"Scope dependency cycle through {scope.value}")
        if scope not in dependencies:
            raise ValueError(f"Scope {scope.value} is referenced but not defined")
        visiting.add(scope)
        for dep in dependencies[scope]:
            visit(dep)
        visiting.discard(scope)
        visited.add(scope)
        ordered.append(scope)

    for scope in dependencies:
        visit(scope)

    return ordered


def _build_registry() -> MappingProxyType:
    handlers: list[ScopeHandler] = [
        CoreBaseScope(),
        ContentScope(),
        AssetsScope(),
        AnalyticsScope(),
        OpsLogsScope(),
    ]
    registry = {handler.scope: handler for handler in handlers}
    missing = set(BackupScope) - set(registry)
    if missing:
        raise ValueError(f"Scopes without a handler: {sorted(s.value for s in missing)}")
    dependency_order({scope: h.depends_on for scope, h in registry.items()})
    return MappingProxyType(registry)


_REGISTRY = _build_registry()


def resolve_scope(scope: BackupScope | str) -> BackupScope:
    """Coerce a scope name to ``BackupScope``.

    Raises:
        UnknownScopeError: If the name is not a defined scope.
    """
    if isinstance(scope, BackupScope):
        return scope
    try:
        return BackupScope(str(scope).upper())
    except ValueError:
        raise UnknownScopeError(scope) from None


def get_scope_handler(scope: BackupScope | str) -> ScopeHandler:
    """Return the handler registered for ``scope``."""
    return _REGISTRY[resolve_scope(scope)]


def get_scope_definition(scope: BackupScope | str) -> ScopeDefinition:
    """Return the static definition of ``scope``."""
    return get_scope_handler(scope).definition()


def get_backup_scopes() -> list[ScopeDefinition]:
    """Every scope definition, in declaration order."""
    return [handler.definition() for handler in _REGISTRY.values()]


def get_scope_table_names(scope: BackupScope | str) -> list[str]:
    """Names of every table (including link tables) a scope touches."""
    return get_scope_handler(scope).table_names()
