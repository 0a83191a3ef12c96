"""
fusemap Hierarchy Traversal

A bitstream is described as a tree of levels. Each level exposes, in
declaration order, a list of sublevels (which lead to further levels) and
a list of fields (which lead to property accessors). Both are declared with
decorators on ordinary methods, so the typed API and the string-driven API
are the same objects:

    @dataclass(frozen=True)
    class Root(Level):
        @sublevel(Param("x", range(4)), Param("y", range(4)))
        def tile(self, x: int, y: int) -> Tile:
            return Tile(x, y)

    Root().tile(0, 0).property_two(1)                          # typed
    Root().construct_sublevel("tile", ["0", "0"])              # by name
    list(Root().construct_all_sublevels("tile"))               # every tile

The node registry is built once per class at class-definition time
(a closed set of node kinds keyed by name); lookups never inspect the
class at runtime.

The schema graph (levels and fields as a networkx DiGraph) is used to
reject cyclic hierarchies before anything walks them.
"""

from __future__ import annotations

import itertools
import logging
import re
from collections.abc import Container
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Iterable, Iterator, Optional, Sequence, Union

import networkx as nx

from fusemap.accessor import PropertyAccessor, Stateful
from fusemap.errors import ConversionError, DefinitionError, TraversalError

logger = logging.getLogger(__name__)


# ============================================================================
# Parameters
# ============================================================================

_UINT_RE = re.compile(r"0x[0-9a-fA-F]+|[0-9]+")


def parse_uint(text: str) -> int:
    """Parse a decimal or 0x-hex unsigned integer parameter."""
    if not _UINT_RE.fullmatch(text):
        raise ValueError(f"invalid unsigned integer {text!r}")
    return int(text, 0) if text.startswith("0x") else int(text, 10)


def parse_bool(text: str) -> bool:
    if text in ("true", "1"):
        return True
    if text in ("false", "0"):
        return False
    raise ValueError(f"invalid boolean {text!r}")


Domain = Union[Iterable[Any], Callable[[Any], Iterable[Any]]]


@dataclass(frozen=True)
class Param:
    """One construction parameter of a sublevel or field.

    Attributes:
        name: Parameter name (informational; text documents may label
              arguments with it, but matching is positional)
        domain: Every valid value, in enumeration order. Either an iterable
                (range, list, Enum class) or a callable taking the owning
                level and returning one. None means "cannot be enumerated".
        parse: Converts the argument's string form to a value
    """
    name: str
    domain: Optional[Domain] = None
    parse: Callable[[str], Any] = parse_uint

    def domain_of(self, owner: Any) -> Any:
        if self.domain is None:
            raise ValueError(f"Parameter '{self.name}' has no domain and cannot be enumerated")
        if callable(self.domain) and not isinstance(self.domain, type):
            return self.domain(owner)
        return self.domain

    def values(self, owner: Any) -> list[Any]:
        return list(self.domain_of(owner))

    def convert(self, text: str, owner: Any) -> Any:
        try:
            value = self.parse(text)
        except (ValueError, KeyError, TypeError, ConversionError) as e:
            raise TraversalError(f"parameter '{self.name}': {e}") from e
        if self.domain is None:
            return value
        domain = self.domain_of(owner)
        # ranges, enums and sets answer membership without being walked
        if not isinstance(domain, Container):
            domain = list(domain)
        if value not in domain:
            raise TraversalError(f"parameter '{self.name}': {text} is out of range")
        return value


def enum_param(name: str, enum_cls: type[Enum]) -> Param:
    """A parameter over every member of `enum_cls`, written by member name."""
    return Param(name, enum_cls, parse=lambda s: enum_cls[s])


# ============================================================================
# Nodes
# ============================================================================

class NodeKind(Enum):
    SUBLEVEL = "sublevel"
    FIELD = "field"


@dataclass(frozen=True)
class Node:
    """A named, parameterized child of a level."""
    name: str
    kind: NodeKind
    params: tuple[Param, ...]
    build: Callable[..., Any]
    instances: Optional[Callable[[Any], Iterable[Sequence[Any]]]] = None

    def _make(self, owner: Any, args: Sequence[Any]) -> Any:
        obj = self.build(owner, *args)
        expected = Level if self.kind == NodeKind.SUBLEVEL else PropertyAccessor
        if not isinstance(obj, expected):
            raise TypeError(
                f"{type(owner).__name__}.{self.name} returned {type(obj).__name__}, "
                f"expected a {expected.__name__}"
            )
        return obj

    def construct(self, owner: Any, args: Sequence[str]) -> Any:
        """construct-one: parse every argument string, then build."""
        if len(args) != len(self.params):
            raise TraversalError(
                f"'{self.name}' takes {len(self.params)} parameter(s), got {len(args)}"
            )
        values = [p.convert(a, owner) for p, a in zip(self.params, args)]
        return self._make(owner, values)

    def construct_all(self, owner: Any) -> Iterator[Any]:
        """enumerate-all: lazily build every instance under `owner`."""
        if self.instances is not None:
            arg_tuples: Iterable[Sequence[Any]] = self.instances(owner)
        else:
            arg_tuples = itertools.product(*(p.values(owner) for p in self.params))
        for args in arg_tuples:
            yield self._make(owner, args)

    def __repr__(self) -> str:
        params = ", ".join(p.name for p in self.params)
        return f"<Node {self.kind.value} {self.name}({params})>"


def _node_decorator(kind: NodeKind, params: tuple[Param, ...], instances: Any) -> Callable:
    for p in params:
        if not isinstance(p, Param):
            raise TypeError(f"Expected Param, got {p!r}")

    def deco(fn: Callable) -> Callable:
        fn._fusemap_node = (kind, params, instances)
        return fn
    return deco


def sublevel(*params: Param, instances: Optional[Callable] = None) -> Callable:
    """Declare a method as a sublevel constructor.

    `instances`, if given, replaces the default enumeration order (the
    cartesian product of parameter domains, first parameter outermost): it
    takes the owning level and yields argument tuples.
    """
    return _node_decorator(NodeKind.SUBLEVEL, params, instances)


def bitfield(*params: Param, instances: Optional[Callable] = None) -> Callable:
    """Declare a method as a field (property accessor) constructor."""
    return _node_decorator(NodeKind.FIELD, params, instances)


# ============================================================================
# Levels
# ============================================================================

class Level(Stateful):
    """Base class for hierarchy levels.

    Subclasses are frozen dataclasses whose fields are the level's
    identifying parameters (the root level usually has none).
    """

    _nodes: ClassVar[dict[str, Node]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        nodes: dict[str, Node] = {}
        for base in reversed(cls.__mro__[1:]):
            nodes.update(getattr(base, "_nodes", {}))
        for attr_name, attr in cls.__dict__.items():
            decl = getattr(attr, "_fusemap_node", None)
            if decl is None:
                continue
            kind, params, instances = decl
            nodes[attr_name] = Node(attr_name, kind, tuple(params), attr, instances)
        cls._nodes = nodes

    @classmethod
    def nodes(cls) -> list[Node]:
        return list(cls._nodes.values())

    def fields(self) -> list[str]:
        return [n.name for n in self._nodes.values() if n.kind == NodeKind.FIELD]

    def sublevels(self) -> list[str]:
        return [n.name for n in self._nodes.values() if n.kind == NodeKind.SUBLEVEL]

    def node(self, key: Union[str, int], kind: NodeKind) -> Node:
        """Resolve a child by name, or by position in fields()/sublevels().

        An unknown name is a TraversalError; an out-of-range index is a
        programming error (IndexError).
        """
        if isinstance(key, int):
            names = self.fields() if kind == NodeKind.FIELD else self.sublevels()
            return self._nodes[names[key]]
        node = self._nodes.get(key)
        if node is None or node.kind != kind:
            raise TraversalError(f"'{key}' is not a {kind.value} of {type(self).__name__}")
        return node

    def construct_field(self, key: Union[str, int], args: Sequence[str] = ()) -> PropertyAccessor:
        return self.node(key, NodeKind.FIELD).construct(self, args)

    def construct_sublevel(self, key: Union[str, int], args: Sequence[str] = ()) -> Level:
        return self.node(key, NodeKind.SUBLEVEL).construct(self, args)

    def construct_all_fields(self, key: Union[str, int]) -> Iterator[PropertyAccessor]:
        return self.node(key, NodeKind.FIELD).construct_all(self)

    def construct_all_sublevels(self, key: Union[str, int]) -> Iterator[Level]:
        return self.node(key, NodeKind.SUBLEVEL).construct_all(self)


# ============================================================================
# Schema graph
# ============================================================================

def describe_hierarchy(root: Level) -> nx.DiGraph:
    """Build the schema graph reachable from `root`.

    Nodes are level class names (kind="level") and "Class.field" names
    (kind="field", with the codec and width). Edges carry the child name.
    The class of each sublevel is taken from its first instance; sublevels
    with no instances are recorded as edges to nothing.
    """
    graph = nx.DiGraph()
    seen: set[type] = set()
    pending: list[Level] = [root]

    while pending:
        level = pending.pop()
        cls = type(level)
        if cls in seen:
            continue
        seen.add(cls)
        graph.add_node(cls.__name__, kind="level", cls=cls)

        for node in cls.nodes():
            if node.kind == NodeKind.SUBLEVEL:
                first = next(node.construct_all(level), None)
                if first is None:
                    logger.debug("Sublevel %s.%s has no instances", cls.__name__, node.name)
                    continue
                child = type(first)
                graph.add_node(child.__name__, kind="level", cls=child)
                graph.add_edge(cls.__name__, child.__name__, name=node.name, params=node.params)
                pending.append(first)
            else:
                field_id = f"{cls.__name__}.{node.name}"
                first = next(node.construct_all(level), None)
                codec = first.codec if first is not None else None
                graph.add_node(
                    field_id, kind="field", codec=codec,
                    width=codec.width if codec is not None else None,
                )
                graph.add_edge(cls.__name__, field_id, name=node.name, params=node.params)

    return graph


def validate_hierarchy(root: Level) -> nx.DiGraph:
    """Reject hierarchies whose levels contain themselves, directly or not."""
    graph = describe_hierarchy(root)
    if not nx.is_directed_acyclic_graph(graph):
        cycle = nx.find_cycle(graph)
        path = " -> ".join(src for src, _ in cycle) + f" -> {cycle[0][0]}"
        raise DefinitionError(f"hierarchy contains a cycle: {path}")
    return graph


def hierarchy_summary(root: Level) -> str:
    """Human-readable tree of the schema."""
    graph = validate_hierarchy(root)
    root_name = type(root).__name__
    lines = [f"{root_name}"]

    def walk(name: str, depth: int) -> None:
        for child in graph.successors(name):
            edge = graph.edges[name, child]
            params = ", ".join(p.name for p in edge["params"])
            call = f"{edge['name']}({params})" if params else edge["name"]
            data = graph.nodes[child]
            if data["kind"] == "level":
                lines.append(f"{'  ' * depth}{call} -> {child}")
                walk(child, depth + 1)
            else:
                codec = data["codec"]
                width = data["width"]
                lines.append(f"{'  ' * depth}{call}: {codec!r} [{width} bit(s)]")

    walk(root_name, 1)
    return "\n".join(lines)
