"""Pattern extractors.

Extractors read generic trees only. Dialect differences live in the
``DialectVocabulary`` each analyzer supplies.
"""

from polyast.extractors.async_patterns import extract_async_patterns
from polyast.extractors.declarations import DeclarationInventory, extract_declarations
from polyast.extractors.testing import extract_test_classes
from polyast.extractors.vocabulary import (
    CSHARP_VOCABULARY,
    JAVA_VOCABULARY,
    DialectVocabulary,
)

__all__ = [
    "CSHARP_VOCABULARY",
    "DeclarationInventory",
    "DialectVocabulary",
    "JAVA_VOCABULARY",
    "extract_async_patterns",
    "extract_declarations",
    "extract_test_classes",
]
