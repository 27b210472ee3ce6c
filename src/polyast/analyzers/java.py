"""Java analyzer.

Parses ``.java`` files with the tree-sitter ``java`` grammar. Root node type
is ``Program``; project manifests are Maven ``pom.xml`` files.

Java has no properties, so the property inventory is always empty.
"""

from typing import Any

from polyast.analyzers.base import AnalyzerCapabilities
from polyast.analyzers.tree_sitter import (
    Properties,
    TreeSitterAnalyzer,
    children_of_type,
    field_text,
    has_token,
    node_text,
)
from polyast.extractors.vocabulary import JAVA_VOCABULARY

TYPE_DECLARATIONS = {
    "class_declaration",
    "interface_declaration",
    "enum_declaration",
    "record_declaration",
    "annotation_type_declaration",
}

ANNOTATIONS = ("marker_annotation", "annotation")


def _modifier_node(native: Any) -> Any:
    found = children_of_type(native, "modifiers")
    return found[0] if found else None


def _modifiers(native: Any) -> str | None:
    modifiers = _modifier_node(native)
    if modifiers is None:
        return None
    words = [child.type for child in modifiers.children if not child.is_named]
    return " ".join(words) if words else None


def _annotations(native: Any, source: bytes) -> str | None:
    modifiers = _modifier_node(native)
    if modifiers is None:
        return None
    names = [
        field_text(annotation, "name", source) or ""
        for annotation in children_of_type(modifiers, *ANNOTATIONS)
    ]
    names = [name for name in names if name]
    return ", ".join(names) if names else None


def _type_names(native: Any, source: bytes) -> list[str]:
    """Names in a superclass / interface clause, flattening type lists."""
    names = []
    for child in native.named_children:
        if child.type == "type_list":
            names.extend(node_text(item, source) for item in child.named_children)
        else:
            names.append(node_text(child, source))
    return names


def _base_types(native: Any, source: bytes) -> str | None:
    names: list[str] = []
    for clause in ("superclass", "interfaces"):
        child = native.child_by_field_name(clause)
        if child is not None:
            names.extend(_type_names(child, source))
    for clause in children_of_type(native, "extends_interfaces"):
        names.extend(_type_names(clause, source))
    return ", ".join(names) if names else None


class JavaAnalyzer(TreeSitterAnalyzer):
    """Analyzer for Java source files."""

    grammar = "java"
    capabilities = AnalyzerCapabilities(
        language="java",
        file_extensions=frozenset({".java"}),
        project_extensions=frozenset({"pom.xml"}),
        root_type="Program",
        name="Java",
        description="Java source files parsed with the tree-sitter java grammar",
    )
    vocabulary = JAVA_VOCABULARY

    def describe(self, native: Any, source: bytes) -> Properties:
        kind = native.type

        if kind in TYPE_DECLARATIONS:
            return {
                "name": field_text(native, "name", source),
                "modifiers": _modifiers(native),
                "base_types": _base_types(native, source),
                "attributes": _annotations(native, source),
            }

        if kind == "method_declaration":
            return {
                "name": field_text(native, "name", source),
                "modifiers": _modifiers(native),
                "return_type": field_text(native, "type", source),
                "attributes": _annotations(native, source),
            }

        if kind in ("constructor_declaration", "compact_constructor_declaration"):
            return {
                "name": field_text(native, "name", source),
                "modifiers": _modifiers(native),
                "attributes": _annotations(native, source),
            }

        if kind == "field_declaration":
            return {
                "modifiers": _modifiers(native),
                "attributes": _annotations(native, source),
            }

        if kind == "method_invocation":
            arguments = native.child_by_field_name("arguments")
            return {
                "member_name": field_text(native, "name", source),
                "receiver": field_text(native, "object", source),
                "argument_count": len(arguments.named_children) if arguments is not None else 0,
            }

        if kind == "import_declaration":
            names = [
                child for child in native.named_children if child.type != "asterisk"
            ]
            return {
                "namespace": node_text(names[0], source) if names else None,
                "is_static": has_token(native, "static"),
                "is_wildcard": bool(children_of_type(native, "asterisk")),
            }

        if kind == "package_declaration":
            names = native.named_children
            return {"name": node_text(names[-1], source) if names else None}

        if kind in (
            "variable_declarator",
            "formal_parameter",
            "enum_constant",
            *ANNOTATIONS,
        ):
            return {"name": field_text(native, "name", source)}

        return {}
