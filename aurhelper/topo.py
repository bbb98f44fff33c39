"""Dependency graph with layered topological ordering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, Set, TypeVar

from aurhelper.text.logger import debugln

T = TypeVar("T", bound=Hashable)
V = TypeVar("V")


class TopoError(Exception):
    """Base class for dependency graph errors."""


class SelfReferentialError(TopoError):
    def __init__(self) -> None:
        super().__init__("self-referential dependencies not allowed")


class ConflictingAliasError(TopoError):
    def __init__(self) -> None:
        super().__init__("alias already defined")


class CircularError(TopoError):
    def __init__(self) -> None:
        super().__init__("circular dependencies not allowed")


@dataclass
class NodeInfo(Generic[V]):
    """Display attributes and payload attached to a graph node."""

    color: str = ""
    background: str = ""
    value: Optional[V] = None


@dataclass(frozen=True)
class DependencyInfo(Generic[T]):
    """The node providing a name, with the dependency it satisfies."""

    provider: T
    depend: Any


def _add_edge(depmap: Dict[T, Set[T]], key: T, node: T) -> None:
    depmap.setdefault(key, set()).add(node)


def _remove_from_depmap(depmap: Dict[T, Set[T]], key: T, node: T) -> bool:
    """Remove ``node`` under ``key``; return True if the key's set was dropped."""
    nodes = depmap.get(key)
    if nodes is not None and len(nodes) == 1:
        del depmap[key]
        return True
    if nodes:
        nodes.discard(node)
    return False


class Graph(Generic[T, V]):
    """A directed dependency graph keyed by hashable nodes."""

    def __init__(self) -> None:
        self._nodes: Dict[T, None] = {}
        self._node_info: Dict[T, NodeInfo[V]] = {}
        self._provides: Dict[T, DependencyInfo[T]] = {}
        # child -> parents
        self._dependencies: Dict[T, Set[T]] = {}
        # parent -> children
        self._dependents: Dict[T, Set[T]] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def exists(self, node: T) -> bool:
        return node in self._nodes

    def add_node(self, node: T) -> None:
        self._nodes[node] = None

    def provides_exists(self, provides: T) -> bool:
        return provides in self._provides

    def get_provider_node(self, provides: T) -> Optional[DependencyInfo[T]]:
        return self._provides.get(provides)

    def provides(self, provides: T, dep_info: Any, node: T) -> None:
        """Record that ``node`` provides ``provides`` through ``dep_info``."""
        self._provides[provides] = DependencyInfo(provider=node, depend=dep_info)

    def for_each(self, fn: Callable[[T, Optional[V]], None]) -> None:
        """Call ``fn(node, value)`` for every node; exceptions propagate."""
        for node in list(self._nodes):
            info = self._node_info.get(node)
            fn(node, info.value if info is not None else None)

    def set_node_info(self, node: T, info: NodeInfo[V]) -> None:
        self._node_info[node] = info

    def get_node_info(self, node: T) -> Optional[NodeInfo[V]]:
        return self._node_info.get(node)

    def depend_on(self, child: T, parent: T) -> None:
        """Make ``child`` depend on ``parent``."""
        if child == parent:
            raise SelfReferentialError()
        if self.depends_on(parent, child):
            raise CircularError()

        self.add_node(parent)
        self.add_node(child)
        _add_edge(self._dependents, parent, child)
        _add_edge(self._dependencies, child, parent)

    def __str__(self) -> str:
        lines = [
            "digraph {",
            "compound=true;",
            "concentrate=true;",
            "node [shape = record, ordering=out];",
        ]
        for node in self._nodes:
            extra = ""
            info = self._node_info.get(node)
            if info is not None and (info.background or info.color):
                extra = (
                    f"[color = {info.color}, style = filled, "
                    f"fillcolor = {info.background}]"
                )
            lines.append(f'\t"{node}"{extra};')
        for parent, children in self._dependencies.items():
            for child in children:
                lines.append(f'\t"{parent}" -> "{child}";')
        return "\n".join(lines) + "\n}"

    def depends_on(self, child: T, parent: T) -> bool:
        """Return whether ``child`` depends on ``parent``, directly or transitively."""
        return parent in self.dependencies(child)

    def has_dependent(self, parent: T, child: T) -> bool:
        return child in self.dependents(parent)

    def _leaves_map(self) -> Dict[T, Optional[V]]:
        leaves: Dict[T, Optional[V]] = {}
        for node in self._nodes:
            if node not in self._dependencies:
                info = self._node_info.get(node)
                leaves[node] = info.value if info is not None else None
        return leaves

    def topo_sorted_layer_map(
        self, check_fn: Optional[Callable[[T, Optional[V]], None]] = None
    ) -> Optional[List[Dict[T, Optional[V]]]]:
        """Return layers of nodes, dependencies first, mapped to their values.

        When ``check_fn`` raises for a node, None is returned.
        """
        layers: List[Dict[T, Optional[V]]] = []
        shrinking = self._clone()

        while True:
            leaves = shrinking._leaves_map()
            if not leaves:
                break
            layers.append(leaves)
            for leaf, value in leaves.items():
                if check_fn is not None:
                    try:
                        check_fn(leaf, value)
                    except Exception:
                        return None
                shrinking._remove(leaf)

        return layers

    def prune(self, node: T) -> List[T]:
        """Remove ``node``, its dependents, and dependencies nothing else needs."""
        pruned = [node]

        current = self._dependents.get(node, set())
        for dependent in list(current):
            if dependent not in current:
                continue
            last = _remove_from_depmap(self._dependencies, dependent, node)
            debugln("pruning dependent", dependent, last)
            if last:
                pruned.extend(self.prune(dependent))
        self._dependents.pop(node, None)

        current = self._dependencies.get(node, set())
        for dependency in list(current):
            if dependency not in current:
                continue
            last = _remove_from_depmap(self._dependents, dependency, node)
            debugln("pruning dependency", dependency, last)
            if last:
                pruned.extend(self.prune(dependency))
        self._dependencies.pop(node, None)

        self._nodes.pop(node, None)
        return pruned

    def _remove(self, node: T) -> None:
        for dependent in list(self._dependents.get(node, ())):
            _remove_from_depmap(self._dependencies, dependent, node)
        self._dependents.pop(node, None)

        for dependency in list(self._dependencies.get(node, ())):
            _remove_from_depmap(self._dependents, dependency, node)
        self._dependencies.pop(node, None)

        self._nodes.pop(node, None)

    def dependencies(self, child: T) -> Set[T]:
        """Return every node ``child`` depends on, transitively."""
        return self._build_transitive(child, self.immediate_dependencies)

    def immediate_dependencies(self, node: T) -> Set[T]:
        return set(self._dependencies.get(node, ()))

    def dependents(self, parent: T) -> Set[T]:
        """Return every node depending on ``parent``, transitively."""
        return self._build_transitive(parent, self._immediate_dependents)

    def _immediate_dependents(self, node: T) -> Set[T]:
        return set(self._dependents.get(node, ()))

    def _clone(self) -> "Graph[T, V]":
        clone: Graph[T, V] = Graph()
        clone._nodes = dict(self._nodes)
        clone._dependencies = {k: set(v) for k, v in self._dependencies.items()}
        clone._dependents = {k: set(v) for k, v in self._dependents.items()}
        clone._node_info = self._node_info
        return clone

    def _build_transitive(self, root: T, next_fn: Callable[[T], Set[T]]) -> Set[T]:
        if root not in self._nodes:
            return set()

        found: Set[T] = set()
        search_next = [root]
        while search_next:
            discovered = []
            for node in search_next:
                for next_node in next_fn(node):
                    if next_node not in found:
                        found.add(next_node)
                        discovered.append(next_node)
            search_next = discovered
        return found