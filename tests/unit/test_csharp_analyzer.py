"""Unit tests for the C# analyzer."""

import pytest

from polyast.analyzers import CSharpAnalyzer, NotSupportedError, ParseError
from polyast.models.ast import ASTNode
from polyast.utils.serialization import dumps_json


class TestCSharpTree:
    """Tests for the generic tree built from C# sources."""

    def test_root_and_language(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        """Test that the root is a CompilationUnit with no errors."""
        analysis = csharp.analyze_file("InvoiceService.cs", csharp_source)

        assert analysis.language == "csharp"
        assert analysis.source_path == "InvoiceService.cs"
        assert analysis.root.node_type == "CompilationUnit"
        assert analysis.error_count == 0
        assert not analysis.root.has("text")

    def test_every_node_has_a_span(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        root = csharp.analyze_file("InvoiceService.cs", csharp_source).root
        size = len(csharp_source.encode("utf-8"))

        for node in root.walk():
            start = node.get("span_start")
            assert 0 <= start <= start + node.get("span_length") <= size
            assert node.get("start_line") >= 1
            assert node.get("end_line") >= node.get("start_line")

    def test_leaves_carry_text(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        """Test that leaf nodes carry their source text."""
        root = csharp.analyze_file("InvoiceService.cs", csharp_source).root

        for node in root.descendants():
            if not node.children:
                assert node.has("text")
        assert "Total" in {n.get("text") for n in root.find_all("Identifier")}

    def test_children_in_source_order(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        root = csharp.analyze_file("InvoiceService.cs", csharp_source).root

        for node in root.walk():
            starts = [child.get("span_start") for child in node.children]
            assert starts == sorted(starts)

    def test_using_directives(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        root = csharp.analyze_file("InvoiceService.cs", csharp_source).root
        usings = root.find_all("UsingDirective")

        assert [u.get("namespace") for u in usings] == ["System.Threading.Tasks", "System.Math"]
        assert [u.get("is_static") for u in usings] == [False, True]

    def test_declaration_properties(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        """Test names, modifiers and attributes on declarations."""
        root = csharp.analyze_file("InvoiceService.cs", csharp_source).root
        cls = root.find_all("ClassDeclaration")[0]

        assert cls.name == "InvoiceService"
        assert cls.get("modifiers") == "public sealed"
        assert cls.get("base_types") == "ServiceBase, IInvoiceService"
        assert cls.get("attributes") == "TestClass"
        assert root.find_all("NamespaceDeclaration")[0].name == "Billing"

    def test_property_accessors(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        root = csharp.analyze_file("InvoiceService.cs", csharp_source).root
        properties = {p.name: p for p in root.find_all("PropertyDeclaration")}

        assert properties["Total"].get("has_getter") is True
        assert properties["Total"].get("has_setter") is True
        assert properties["Total"].get("property_type") == "decimal"
        assert properties["Name"].get("has_getter") is True
        assert properties["Name"].get("has_setter") is False

    def test_method_properties(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        root = csharp.analyze_file("InvoiceService.cs", csharp_source).root
        method = root.find_all("MethodDeclaration")[0]

        assert method.name == "ComputeAsync"
        assert method.get("is_async") is True
        assert method.get("return_type") == "Task<decimal>"
        assert method.line == 13


class TestCSharpAnalysis:
    """Tests for the extracted inventories."""

    def test_declarations(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        analysis = csharp.analyze_file("InvoiceService.cs", csharp_source)

        assert analysis.classes == ["InvoiceService"]
        assert analysis.interfaces == ["IInvoiceService"]
        assert analysis.enums == ["InvoiceState"]
        assert analysis.methods == ["ComputeAsync", "WaitAllAsync", "Reset", "ComputeAsync"]
        assert analysis.properties == ["Total", "Name"]

    def test_class_details(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        detail = csharp.analyze_file("InvoiceService.cs", csharp_source).class_details[0]

        assert detail.modifiers == ["public", "sealed"]
        assert detail.base_types == ["ServiceBase", "IInvoiceService"]
        assert detail.methods == ["ComputeAsync", "WaitAllAsync", "Reset"]
        assert detail.properties == ["Total", "Name"]

    def test_async_patterns(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        """Test awaits, ConfigureAwait and WhenAll detection."""
        patterns = csharp.analyze_file("InvoiceService.cs", csharp_source).async_patterns

        assert [p.method_name for p in patterns] == ["ComputeAsync", "WaitAllAsync", "ComputeAsync"]
        compute, wait_all, declared = patterns
        assert compute.await_count == 2
        assert compute.has_configure_await
        assert compute.line == 13
        assert wait_all.await_count == 0
        assert wait_all.has_when_all
        assert not wait_all.has_when_any
        assert declared.await_count == 0

    def test_async_lambda_not_counted(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        """Test that a synchronous method holding an async lambda is not async."""
        patterns = csharp.analyze_file("InvoiceService.cs", csharp_source).async_patterns

        assert "Reset" not in [p.method_name for p in patterns]

    def test_configure_await_reads_own_argument(self, csharp: CSharpAnalyzer) -> None:
        """Test that only the ConfigureAwait argument decides the idiom."""
        source = """class C
{
    async Task CapturedAsync() { await Load(false).ConfigureAwait(true); }
    async Task FreeAsync() { await Load(true).ConfigureAwait(continueOnCapturedContext: false); }
}
"""
        captured, free = csharp.analyze_file("C.cs", source).async_patterns

        assert not captured.has_configure_await
        assert free.has_configure_await

    def test_test_classes(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        analysis = csharp.analyze_file("InvoiceService.cs", csharp_source)

        assert [c.name for c in analysis.test_classes] == ["InvoiceService"]


class TestCSharpErrors:
    """Tests for error handling."""

    def test_empty_file(self, csharp: CSharpAnalyzer) -> None:
        """Test that an empty file yields a childless root."""
        analysis = csharp.analyze_file("Empty.cs", "")

        assert analysis.root.node_type == "CompilationUnit"
        assert analysis.root.children == []
        assert analysis.classes == []

    def test_recovered_errors(self, csharp: CSharpAnalyzer, csharp_source: str) -> None:
        """Test that small syntax errors are recovered and counted."""
        broken = csharp_source.replace("Total = 0;", "Total = 0")

        analysis = csharp.analyze_file("InvoiceService.cs", broken)

        assert analysis.has_errors
        assert analysis.classes == ["InvoiceService"]

    def test_strict_mode_rejects_any_error(self, csharp_source: str) -> None:
        strict = CSharpAnalyzer(max_error_ratio=0.0)
        broken = csharp_source.replace("Total = 0;", "Total = 0")

        with pytest.raises(ParseError) as exc_info:
            strict.analyze_file("InvoiceService.cs", broken)

        assert exc_info.value.path == "InvoiceService.cs"
        assert strict.analyze_file("InvoiceService.cs", csharp_source).error_count == 0

    def test_garbage_raises_parse_error(self, csharp: CSharpAnalyzer) -> None:
        with pytest.raises(ParseError, match="Failed to parse Broken.cs"):
            csharp.analyze_file("Broken.cs", ")))) ]]]] }}}} ))))")

    def test_wrong_extension(self, csharp: CSharpAnalyzer) -> None:
        with pytest.raises(NotSupportedError):
            csharp.analyze_file("Order.java", "class Order {}")

    def test_invalid_error_ratio(self) -> None:
        with pytest.raises(ValueError, match="max_error_ratio"):
            CSharpAnalyzer(max_error_ratio=1.5)

    def test_non_ascii_source(self, csharp: CSharpAnalyzer) -> None:
        """Test that spans are byte offsets even with non-ASCII text."""
        source = 'class Café { string s = "naïve"; }'

        analysis = csharp.analyze_file("Cafe.cs", source)

        assert analysis.classes == ["Café"]
        assert analysis.root.children[0].get("span_length") == len(source.encode("utf-8"))


class TestCSharpDeepNesting:
    """Tests for sources nested deeper than the interpreter's recursion limit."""

    @pytest.fixture
    def deep_source(self) -> str:
        terms = " + ".join(['"a"'] * 1500)
        return f"class C {{ string s = {terms}; }}"

    def test_deep_tree_serializes(self, csharp: CSharpAnalyzer, deep_source: str) -> None:
        analysis = csharp.analyze_file("Deep.cs", deep_source)

        data = analysis.to_dict()

        assert len(analysis.root.find_all("BinaryExpression")) == 1499
        assert data["root"]["node_type"] == "CompilationUnit"
        assert ASTNode.from_dict(data["root"]) == analysis.root

    def test_deep_trees_compare(self, csharp: CSharpAnalyzer, deep_source: str) -> None:
        first = csharp.analyze_file("Deep.cs", deep_source)
        second = csharp.analyze_file("Deep.cs", deep_source)

        assert first.root == second.root
        assert first.structurally_equals(second)
        assert first.root != csharp.analyze_file("Deep.cs", deep_source.replace('"a";', '"b";')).root

    def test_deep_tree_json(self, csharp: CSharpAnalyzer, deep_source: str) -> None:
        text = dumps_json(csharp.analyze_file("Deep.cs", deep_source).to_dict())

        assert text.startswith('{\n  "source_path": "Deep.cs"')
        assert text.count('"node_type": "BinaryExpression"') == 1499
