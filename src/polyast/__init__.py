"""polyast - multi-language AST normalization and analysis.

polyast parses C#, Java and Razor sources with tree-sitter, converts every
native syntax tree into one generic node model, and aggregates per-file
results into project and solution analyses.

Core principles:
- One tree per file: every dialect produces the same ASTNode structure
- Source order: children always mirror their order in the source text
- Failures are data: one bad file never loses results for its siblings
- Determinism: sequential and concurrent runs produce identical aggregates
"""

__version__ = "0.1.0"
__author__ = "polyast Contributors"
