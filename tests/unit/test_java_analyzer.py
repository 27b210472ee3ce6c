"""Unit tests for the Java analyzer."""

import pytest

from polyast.analyzers import JavaAnalyzer, ParseError


class TestJavaTree:
    """Tests for the generic tree built from Java sources."""

    def test_root_and_language(self, java: JavaAnalyzer, java_source: str) -> None:
        analysis = java.analyze_file("InvoiceService.java", java_source)

        assert analysis.language == "java"
        assert analysis.root.node_type == "Program"
        assert analysis.error_count == 0

    def test_package_and_imports(self, java: JavaAnalyzer, java_source: str) -> None:
        """Test that package and import declarations carry their names."""
        root = java.analyze_file("InvoiceService.java", java_source).root
        imports = root.find_all("ImportDeclaration")

        assert root.find_all("PackageDeclaration")[0].name == "com.example.billing"
        assert [i.get("namespace") for i in imports] == [
            "java.util.concurrent.CompletableFuture",
            "java.util.Objects.requireNonNull",
        ]
        assert [i.get("is_static") for i in imports] == [False, True]
        assert not any(i.get("is_wildcard") for i in imports)

    def test_wildcard_import(self, java: JavaAnalyzer) -> None:
        root = java.analyze_file("A.java", "import java.util.*;\nclass A {}\n").root

        assert root.find_all("ImportDeclaration")[0].get("is_wildcard") is True

    def test_class_properties(self, java: JavaAnalyzer, java_source: str) -> None:
        """Test modifiers, annotations and base types on the class."""
        root = java.analyze_file("InvoiceService.java", java_source).root
        cls = root.find_all("ClassDeclaration")[0]

        assert cls.name == "InvoiceService"
        assert cls.get("modifiers") == "public"
        assert cls.get("attributes") == "Service"
        assert cls.get("base_types") == "ServiceBase, InvoiceApi, AutoCloseable"

    def test_method_properties(self, java: JavaAnalyzer, java_source: str) -> None:
        root = java.analyze_file("InvoiceService.java", java_source).root
        methods = {m.name: m for m in root.find_all("MethodDeclaration")}

        assert methods["computeNow"].get("return_type") == "long"
        assert methods["close"].get("attributes") == "Override"
        assert methods["close"].get("modifiers") == "public"

    def test_invocations(self, java: JavaAnalyzer, java_source: str) -> None:
        root = java.analyze_file("InvoiceService.java", java_source).root
        calls = {
            (c.get("receiver"), c.get("member_name")): c.get("argument_count")
            for c in root.find_all("MethodInvocation")
        }

        assert calls[("CompletableFuture", "anyOf")] == 2
        assert calls[("computeAsync(id)", "join")] == 0


class TestJavaAnalysis:
    """Tests for the extracted inventories."""

    def test_declarations(self, java: JavaAnalyzer, java_source: str) -> None:
        analysis = java.analyze_file("InvoiceService.java", java_source)

        assert analysis.classes == ["InvoiceService"]
        assert analysis.interfaces == ["InvoiceApi"]
        assert analysis.enums == ["InvoiceState"]
        assert analysis.methods == [
            "computeAsync",
            "firstOf",
            "computeNow",
            "chained",
            "close",
            "computeAsync",
        ]
        assert analysis.properties == []

    def test_class_details(self, java: JavaAnalyzer, java_source: str) -> None:
        detail = java.analyze_file("InvoiceService.java", java_source).class_details[0]

        assert detail.base_types == ["ServiceBase", "InvoiceApi", "AutoCloseable"]
        assert detail.methods == ["computeAsync", "firstOf", "computeNow", "chained", "close"]

    def test_future_patterns(self, java: JavaAnalyzer, java_source: str) -> None:
        """Test that future-returning methods are recognized as asynchronous."""
        patterns = java.analyze_file("InvoiceService.java", java_source).async_patterns

        assert [p.method_name for p in patterns] == [
            "computeAsync",
            "firstOf",
            "chained",
            "computeAsync",
        ]
        compute, first_of, chained, declared = patterns
        assert compute.has_configure_await
        assert compute.return_type == "CompletableFuture<Long>"
        assert compute.line == 8
        assert first_of.has_when_any
        assert not first_of.has_when_all
        assert chained.await_count == 2
        assert declared.line == 31
        assert not declared.has_configure_await
        assert declared.await_count == 0

    def test_blocking_method_is_not_async(self, java: JavaAnalyzer, java_source: str) -> None:
        patterns = java.analyze_file("InvoiceService.java", java_source).async_patterns

        assert "computeNow" not in [p.method_name for p in patterns]

    def test_junit_test_class(self, java: JavaAnalyzer) -> None:
        source = """class OrderTest {
    @org.junit.jupiter.api.Test
    void works() {}

    void helper() {}
}
"""
        analysis = java.analyze_file("OrderTest.java", source)

        assert [c.name for c in analysis.test_classes] == ["OrderTest"]
        assert analysis.test_classes[0].methods == ["works", "helper"]


class TestJavaErrors:
    """Tests for error handling."""

    def test_empty_file(self, java: JavaAnalyzer) -> None:
        analysis = java.analyze_file("Empty.java", "")

        assert analysis.root.node_type == "Program"
        assert analysis.root.children == []

    def test_garbage_raises_parse_error(self, java: JavaAnalyzer) -> None:
        with pytest.raises(ParseError):
            java.analyze_file("Broken.java", ")))) ]]]] }}}} ))))")
