"""C# analyzer.

Parses ``.cs`` files with the tree-sitter ``csharp`` grammar. Root node type
is ``CompilationUnit``; project manifests are ``.csproj`` files.
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
from polyast.extractors.vocabulary import CSHARP_VOCABULARY

TYPE_DECLARATIONS = {
    "class_declaration",
    "struct_declaration",
    "record_declaration",
    "record_struct_declaration",
    "interface_declaration",
    "enum_declaration",
}

AWAITABLE_STATEMENTS = {"foreach_statement", "using_statement", "local_declaration_statement"}


def _modifiers(native: Any, source: bytes) -> str | None:
    words = [node_text(child, source) for child in children_of_type(native, "modifier")]
    return " ".join(words) if words else None


def _attributes(native: Any, source: bytes) -> str | None:
    names = []
    for attribute_list in children_of_type(native, "attribute_list"):
        for attribute in children_of_type(attribute_list, "attribute"):
            name = field_text(attribute, "name", source)
            if name:
                names.append(name)
    return ", ".join(names) if names else None


def _base_types(native: Any, source: bytes) -> str | None:
    for base_list in children_of_type(native, "base_list"):
        names = [node_text(child, source) for child in base_list.named_children]
        if names:
            return ", ".join(names)
    return None


def _simple_name(native: Any, source: bytes) -> str:
    """Identifier of a name node, dropping generic arguments."""
    if native.type == "generic_name" and native.named_children:
        return node_text(native.named_children[0], source)
    return node_text(native, source)


def _accessor_kinds(native: Any, source: bytes) -> set[str]:
    kinds = set()
    for accessors in children_of_type(native, "accessor_list"):
        for accessor in children_of_type(accessors, "accessor_declaration"):
            name = accessor.child_by_field_name("name")
            if name is not None:
                kinds.add(node_text(name, source))
                continue
            kinds.update(child.type for child in accessor.children if not child.is_named)
    return kinds


class CSharpAnalyzer(TreeSitterAnalyzer):
    """Analyzer for C# source files."""

    grammar = "csharp"
    capabilities = AnalyzerCapabilities(
        language="csharp",
        file_extensions=frozenset({".cs"}),
        project_extensions=frozenset({".csproj"}),
        root_type="CompilationUnit",
        name="C#",
        description="C# source files parsed with the tree-sitter csharp grammar",
    )
    vocabulary = CSHARP_VOCABULARY

    def describe(self, native: Any, source: bytes) -> Properties:
        kind = native.type

        if kind in TYPE_DECLARATIONS:
            return {
                "name": field_text(native, "name", source),
                "modifiers": _modifiers(native, source),
                "base_types": _base_types(native, source),
                "attributes": _attributes(native, source),
            }

        if kind in ("method_declaration", "local_function_statement"):
            modifiers = _modifiers(native, source)
            return_type = field_text(native, "returns", source) or field_text(
                native, "type", source
            )
            return {
                "name": field_text(native, "name", source),
                "modifiers": modifiers,
                "return_type": return_type,
                "is_async": "async" in (modifiers or "").split(),
                "attributes": _attributes(native, source),
            }

        if kind == "constructor_declaration":
            return {
                "name": field_text(native, "name", source),
                "modifiers": _modifiers(native, source),
                "attributes": _attributes(native, source),
            }

        if kind == "property_declaration":
            accessors = _accessor_kinds(native, source)
            return {
                "name": field_text(native, "name", source),
                "property_type": field_text(native, "type", source),
                "modifiers": _modifiers(native, source),
                "attributes": _attributes(native, source),
                "has_getter": "get" in accessors,
                "has_setter": bool(accessors & {"set", "init"}),
            }

        if kind in ("field_declaration", "event_field_declaration"):
            return {
                "modifiers": _modifiers(native, source),
                "attributes": _attributes(native, source),
            }

        if kind == "lambda_expression":
            return {
                "is_async": has_token(native, "async")
                or "async" in (_modifiers(native, source) or "").split()
            }

        if kind in AWAITABLE_STATEMENTS:
            return {"is_await": has_token(native, "await")}

        if kind == "invocation_expression":
            return self._describe_invocation(native, source)

        if kind == "using_directive":
            names = native.named_children
            return {
                "namespace": node_text(names[-1], source) if names else None,
                "alias": field_text(native, "name", source) if len(names) > 1 else None,
                "is_static": has_token(native, "static"),
            }

        if kind in (
            "namespace_declaration",
            "file_scoped_namespace_declaration",
            "enum_member_declaration",
            "attribute",
            "parameter",
        ):
            return {"name": field_text(native, "name", source)}

        if kind == "variable_declarator":
            name = field_text(native, "name", source)
            if name is None:
                identifiers = children_of_type(native, "identifier")
                name = node_text(identifiers[0], source) if identifiers else None
            return {"name": name}

        return {}

    def _describe_invocation(self, native: Any, source: bytes) -> Properties:
        function = native.child_by_field_name("function")
        arguments = native.child_by_field_name("arguments")
        properties: Properties = {
            "argument_count": len(children_of_type(arguments, "argument"))
            if arguments is not None
            else 0
        }
        if function is None:
            return properties

        if function.type == "member_access_expression":
            name = function.child_by_field_name("name")
            properties["receiver"] = field_text(function, "expression", source)
            properties["member_name"] = _simple_name(name, source) if name else None
        elif function.type in ("identifier", "generic_name"):
            properties["member_name"] = _simple_name(function, source)
        return properties
