"""Generic AST node model.

Every language analyzer emits trees of ``ASTNode``. The model is
schema-free: ``node_type`` is the native category name and ``properties`` is
an open, ordered mapping of scalar values, so new dialects never require a
change here.

Invariants:
- A node belongs to exactly one parent (``add_child`` rejects re-parenting).
- ``children`` are kept in source order.
- Property values are scalars (str, int, float, bool).
"""

import weakref
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Union

PropertyValue = Union[str, int, float, bool]

SCALAR_TYPES = (str, int, float, bool)


@dataclass(eq=False, repr=False)
class ASTNode:
    """Universal syntax tree node.

    Attributes:
        node_type: Native syntactic category (e.g. "ClassDeclaration")
        properties: Dialect-specific scalar attributes (name, span, modifiers)
        children: Child nodes in source order
    """

    node_type: str
    properties: dict[str, PropertyValue] = field(default_factory=dict)
    children: list["ASTNode"] = field(default_factory=list)
    _parent: "weakref.ReferenceType[ASTNode] | None" = field(
        default=None, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        for key, value in self.properties.items():
            if not isinstance(value, SCALAR_TYPES):
                raise TypeError(
                    f"Property {key!r} of {self.node_type} must be a scalar, "
                    f"got {type(value).__name__}"
                )
        for child in self.children:
            self._adopt(child)

    # =========================================================================
    # Construction
    # =========================================================================

    def _adopt(self, child: "ASTNode") -> None:
        current = child.parent
        if current is not None and current is not self:
            raise ValueError(
                f"{child.node_type} node already belongs to a {current.node_type} node"
            )
        child._parent = weakref.ref(self)

    def add_child(self, child: "ASTNode") -> "ASTNode":
        """Append ``child`` and record this node as its parent.

        Returns:
            The appended child
        """
        self._adopt(child)
        self.children.append(child)
        return child

    def insert_child(self, index: int, child: "ASTNode") -> "ASTNode":
        """Insert ``child`` at ``index`` and record this node as its parent."""
        self._adopt(child)
        self.children.insert(index, child)
        return child

    def detach_children(self) -> list["ASTNode"]:
        """Remove and return all children, clearing their parent links."""
        children, self.children = self.children, []
        for child in children:
            child._parent = None
        return children

    def set(self, key: str, value: PropertyValue | None) -> None:
        """Set a property, skipping ``None`` so absent features stay absent."""
        if value is None:
            return
        if not isinstance(value, SCALAR_TYPES):
            raise TypeError(f"Property {key!r} must be a scalar, got {type(value).__name__}")
        self.properties[key] = value

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def parent(self) -> "ASTNode | None":
        """Parent node, if it is still alive (weak link, diagnostics only)."""
        if self._parent is None:
            return None
        return self._parent()

    @property
    def name(self) -> str | None:
        """Value of the ``name`` property, or None when not applicable."""
        value = self.properties.get("name")
        return value if isinstance(value, str) else None

    def get(self, key: str, default: Any = None) -> Any:
        """Get a property value."""
        return self.properties.get(key, default)

    def has(self, key: str) -> bool:
        """Return True if the property is present (even when blank)."""
        return key in self.properties

    @property
    def line(self) -> int:
        """1-based start line, 0 when the analyzer recorded no position."""
        value = self.properties.get("start_line", 0)
        return value if isinstance(value, int) else 0

    def walk(self) -> Iterator["ASTNode"]:
        """Yield this node and all descendants, depth-first pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def descendants(self) -> Iterator["ASTNode"]:
        """Yield all descendants in pre-order, excluding this node."""
        walker = self.walk()
        next(walker)
        yield from walker

    def find_all(self, node_types: str | Iterable[str]) -> list["ASTNode"]:
        """Return descendants (and self) whose type is in ``node_types``."""
        wanted = {node_types} if isinstance(node_types, str) else set(node_types)
        return [node for node in self.walk() if node.node_type in wanted]

    def first_child(self, node_type: str) -> "ASTNode | None":
        """Return the first direct child of the given type."""
        for child in self.children:
            if child.node_type == node_type:
                return child
        return None

    @property
    def node_count(self) -> int:
        """Total number of nodes in this subtree."""
        return sum(1 for _ in self.walk())

    # =========================================================================
    # Comparison
    # =========================================================================

    def __eq__(self, other: object) -> bool:
        """Compare type, properties and children in order.

        Iterative, so trees of any depth compare without recursion.
        """
        if not isinstance(other, ASTNode):
            return NotImplemented
        stack = [(self, other)]
        while stack:
            left, right = stack.pop()
            if (
                left.node_type != right.node_type
                or left.properties != right.properties
                or len(left.children) != len(right.children)
            ):
                return False
            stack.extend(zip(left.children, right.children))
        return True

    def __repr__(self) -> str:
        return (
            f"ASTNode(node_type={self.node_type!r}, properties={self.properties!r}, "
            f"children=<{len(self.children)}>)"
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Convert to a nested dictionary preserving child order."""
        result = _node_dict(self)
        stack = [(self, result)]
        while stack:
            node, data = stack.pop()
            for child in node.children:
                child_data = _node_dict(child)
                data["children"].append(child_data)
                stack.append((child, child_data))
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ASTNode":
        """Rebuild a tree from ``to_dict`` output."""
        root = cls(node_type=data["node_type"], properties=dict(data.get("properties", {})))
        stack = [(root, data)]
        while stack:
            node, node_data = stack.pop()
            for child_data in node_data.get("children", []):
                child = node.add_child(
                    cls(
                        node_type=child_data["node_type"],
                        properties=dict(child_data.get("properties", {})),
                    )
                )
                stack.append((child, child_data))
        return root


def _node_dict(node: ASTNode) -> dict[str, Any]:
    return {"node_type": node.node_type, "properties": dict(node.properties), "children": []}
