"""Dependency ordering for modules and units."""

from typing import Callable, Dict, FrozenSet, Hashable, List, Sequence, TypeVar

from .exceptions import DependencyCycleError
from .types import ModuleDescriptor, ModuleName, Unit

T = TypeVar("T")


def _stable_toposort(
    items: Sequence[T],
    key: Callable[[T], Hashable],
    provides: Callable[[T], FrozenSet[ModuleName]],
    requires: Callable[[T], FrozenSet[ModuleName]],
) -> List[T]:
    """
    Topologically sort items, keeping declaration order among ready items.

    Requirements that no item provides are external and do not constrain
    the order.

    Raises:
        DependencyCycleError: If the items depend on each other in a cycle
    """
    provider: Dict[ModuleName, int] = {}
    for index, item in enumerate(items):
        for name in provides(item):
            provider[name] = index

    # Edges: index -> indices it waits for
    waits_for: Dict[int, set] = {
        index: {provider[n] for n in requires(item) if n in provider} - {index}
        for index, item in enumerate(items)
    }

    ordered: List[int] = []
    placed: set = set()
    while len(ordered) < len(items):
        ready = next(
            (i for i in range(len(items)) if i not in placed and waits_for[i] <= placed),
            None,
        )
        if ready is None:
            raise DependencyCycleError(_find_cycle(items, key, waits_for, placed))
        ordered.append(ready)
        placed.add(ready)

    return [items[i] for i in ordered]


def _find_cycle(items, key, waits_for, placed) -> List[str]:
    # Walk unplaced nodes until one repeats
    start = next(i for i in range(len(items)) if i not in placed)
    path: List[int] = []
    node = start
    while node not in path:
        path.append(node)
        node = min(waits_for[node] - placed)
    cycle = path[path.index(node) :] + [node]
    return [str(key(items[i])) for i in cycle]


def order_modules(descriptors: Sequence[ModuleDescriptor]) -> List[ModuleDescriptor]:
    """
    Order module descriptors so each follows the modules it depends on.

    Args:
        descriptors: Descriptors in declaration order

    Returns:
        Descriptors in deployable order (unchanged for valid hand-ordered input)

    Raises:
        DependencyCycleError: If two or more modules depend on each other
    """
    return _stable_toposort(
        descriptors,
        key=lambda d: d.tag.value,
        provides=lambda d: frozenset({d.tag}),
        requires=lambda d: d.dependencies,
    )


def order_units(units: Sequence[Unit]) -> List[Unit]:
    """
    Order units so each follows the units providing its external dependencies.

    Raises:
        DependencyCycleError: If units depend on each other in a cycle
    """
    return _stable_toposort(
        units,
        key=lambda u: u.tag,
        provides=lambda u: u.provides,
        requires=lambda u: u.external_dependencies,
    )
