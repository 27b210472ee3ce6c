"""Test fixture recognition.

A class is a test fixture if it carries a test attribute itself or any of
its direct methods does.
"""

from polyast.extractors.declarations import build_class_info, direct_members, split_list
from polyast.extractors.vocabulary import DialectVocabulary, attribute_base_name
from polyast.models.analysis import ClassInfo
from polyast.models.ast import ASTNode


def has_test_attribute(node: ASTNode, vocabulary: DialectVocabulary) -> bool:
    """Return True if the node is annotated with a test marker."""
    return any(
        attribute_base_name(attribute) in vocabulary.test_attributes
        for attribute in split_list(node.get("attributes"))
    )


def is_test_class(node: ASTNode, vocabulary: DialectVocabulary) -> bool:
    if has_test_attribute(node, vocabulary):
        return True
    return any(
        member.node_type in vocabulary.method_types
        and has_test_attribute(member, vocabulary)
        for member in direct_members(node, vocabulary)
    )


def extract_test_classes(
    root: ASTNode, vocabulary: DialectVocabulary, file_path: str = ""
) -> list[ClassInfo]:
    """Return summaries of the test fixture classes in a tree."""
    return [
        build_class_info(node, vocabulary, file_path)
        for node in root.walk()
        if node.node_type in vocabulary.class_types
        and node.name
        and is_test_class(node, vocabulary)
    ]
