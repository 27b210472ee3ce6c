"""Declaration inventory extraction.

Walks a generic tree and lists classes, interfaces, enums, methods and
properties by name, plus a per-class summary of direct members.
"""

from dataclasses import dataclass, field

from polyast.extractors.vocabulary import DialectVocabulary
from polyast.models.analysis import ClassInfo
from polyast.models.ast import ASTNode


@dataclass
class DeclarationInventory:
    """Names declared in one tree, in pre-order."""

    classes: list[str] = field(default_factory=list)
    interfaces: list[str] = field(default_factory=list)
    enums: list[str] = field(default_factory=list)
    methods: list[str] = field(default_factory=list)
    properties: list[str] = field(default_factory=list)
    class_details: list[ClassInfo] = field(default_factory=list)


def split_list(value: object, separator: str = ",") -> list[str]:
    """Split a joined property value back into its parts."""
    if not isinstance(value, str) or not value.strip():
        return []
    return [part.strip() for part in value.split(separator) if part.strip()]


def direct_members(
    type_node: ASTNode, vocabulary: DialectVocabulary
) -> list[ASTNode]:
    """Return members of a type declaration, not descending into nested types."""
    nested_types = vocabulary.type_declaration_types
    members = []
    stack = list(reversed(type_node.children))
    while stack:
        node = stack.pop()
        members.append(node)
        if node.node_type in nested_types:
            continue
        stack.extend(reversed(node.children))
    return members


def build_class_info(
    node: ASTNode, vocabulary: DialectVocabulary, file_path: str
) -> ClassInfo:
    """Summarize one class-like declaration."""
    info = ClassInfo(
        name=node.name or "",
        file_path=file_path,
        line=node.line,
        modifiers=split_list(node.get("modifiers"), " "),
        base_types=split_list(node.get("base_types")),
    )
    for member in direct_members(node, vocabulary):
        if not member.name:
            continue
        if member.node_type in vocabulary.method_types:
            info.methods.append(member.name)
        elif member.node_type in vocabulary.property_types:
            info.properties.append(member.name)
    return info


def extract_declarations(
    root: ASTNode, vocabulary: DialectVocabulary, file_path: str = ""
) -> DeclarationInventory:
    """List the declarations in a tree.

    Nodes lacking a ``name`` property (recovered error fragments, anonymous
    declarations) are skipped.
    """
    inventory = DeclarationInventory()
    for node in root.walk():
        name = node.name
        if not name:
            continue
        node_type = node.node_type
        if node_type in vocabulary.class_types:
            inventory.classes.append(name)
            inventory.class_details.append(build_class_info(node, vocabulary, file_path))
        elif node_type in vocabulary.interface_types:
            inventory.interfaces.append(name)
        elif node_type in vocabulary.enum_types:
            inventory.enums.append(name)
        elif node_type in vocabulary.method_types:
            inventory.methods.append(name)
        elif node_type in vocabulary.property_types:
            inventory.properties.append(name)
    return inventory
