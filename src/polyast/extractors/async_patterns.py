"""Asynchronous method pattern extraction.

A method is asynchronous when it carries an async modifier or returns one of
the dialect's future-like types. For each such method we count suspension
points and note the context-free continuation and when-all/when-any idioms.
Nested lambdas and local functions are separate scopes and are not counted.
"""

from collections.abc import Iterator

from polyast.extractors.declarations import split_list
from polyast.extractors.vocabulary import DialectVocabulary, base_type_name
from polyast.models.analysis import AsyncPatternInfo
from polyast.models.ast import ASTNode


def is_async_method(node: ASTNode, vocabulary: DialectVocabulary) -> bool:
    """Return True if a method declaration is asynchronous in its dialect."""
    if node.get("is_async") is True:
        return True
    modifiers = split_list(node.get("modifiers"), " ")
    if vocabulary.async_modifiers.intersection(modifiers):
        return True
    return_type = node.get("return_type")
    if isinstance(return_type, str) and return_type:
        return base_type_name(return_type) in vocabulary.async_return_types
    return False


def method_body_nodes(
    method: ASTNode, vocabulary: DialectVocabulary
) -> Iterator[ASTNode]:
    """Yield nodes belonging to the method's own scope."""
    excluded = vocabulary.scope_types | vocabulary.method_types
    stack = list(reversed(method.children))
    while stack:
        node = stack.pop()
        if node.node_type in excluded:
            continue
        yield node
        stack.extend(reversed(node.children))


def _first_argument_is(
    invocation: ASTNode, literal: str, vocabulary: DialectVocabulary
) -> bool:
    """Return True if the call's own first argument is the given literal.

    Only the invocation's argument list is inspected, never its receiver.
    """
    arguments = next(
        (c for c in invocation.children if c.node_type in vocabulary.argument_list_types),
        None,
    )
    if arguments is None or not arguments.children:
        return False
    first = arguments.children[0]
    # Named arguments keep the value as the last child
    while first.node_type in vocabulary.argument_types and first.children:
        first = first.children[-1]
    return not first.children and first.get("text") == literal


def analyze_async_method(
    method: ASTNode, vocabulary: DialectVocabulary, file_path: str = ""
) -> AsyncPatternInfo:
    """Build the pattern record for one asynchronous method."""
    info = AsyncPatternInfo(
        method_name=method.name or "",
        return_type=str(method.get("return_type", "")),
        file_path=file_path,
        line=method.line,
    )
    for node in method_body_nodes(method, vocabulary):
        node_type = node.node_type
        if node_type in vocabulary.await_types:
            info.await_count += 1
            continue
        if node_type in vocabulary.await_flag_types and node.get("is_await") is True:
            info.await_count += 1
            continue
        if node_type not in vocabulary.invocation_types:
            continue

        member = node.get("member_name")
        if not isinstance(member, str):
            continue
        if member in vocabulary.suspension_members and node.get("argument_count") == 0:
            info.await_count += 1
        if member in vocabulary.context_free_members:
            literal = vocabulary.context_free_argument
            if literal is None or _first_argument_is(node, literal, vocabulary):
                info.has_configure_await = True
        receiver = node.get("receiver")
        if isinstance(receiver, str) and base_type_name(receiver) in vocabulary.join_receivers:
            if member in vocabulary.when_all_members:
                info.has_when_all = True
            elif member in vocabulary.when_any_members:
                info.has_when_any = True
    return info


def extract_async_patterns(
    root: ASTNode, vocabulary: DialectVocabulary, file_path: str = ""
) -> list[AsyncPatternInfo]:
    """Return one record per asynchronous method, in source order."""
    return [
        analyze_async_method(node, vocabulary, file_path)
        for node in root.walk()
        if node.node_type in vocabulary.method_types
        and node.name
        and is_async_method(node, vocabulary)
    ]
