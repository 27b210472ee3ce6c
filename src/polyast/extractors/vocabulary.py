"""Per-dialect node vocabularies for the pattern extractors.

Extractors never hard-code dialect names: each analyzer hands them a
``DialectVocabulary`` describing which node types are declarations, which
are suspension points, and which invocations form the asynchronous idioms.
"""

from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class DialectVocabulary:
    """Node categories and member names one dialect uses.

    Attributes:
        language: Dialect identifier
        class_types: Class-like declaration node types
        interface_types: Interface declaration node types
        enum_types: Enum declaration node types
        method_types: Method declaration node types
        property_types: Property declaration node types
        scope_types: Nested callable scopes (lambdas, local functions) whose
            bodies do not count towards the enclosing method
        invocation_types: Call expression node types
        await_types: Node types that are suspension points on their own
        await_flag_types: Node types that are suspension points when their
            ``is_await`` property is true
        suspension_members: Invoked members that block until a result is
            available (counted only when called with no arguments)
        async_modifiers: Modifier keywords marking an asynchronous method
        async_return_types: Return type names marking an asynchronous method
        context_free_members: Invoked members that resume without capturing
            the caller's context
        context_free_argument: Literal argument the context-free call must
            receive (None if the member name alone is enough)
        argument_list_types: Argument list node types of an invocation
        argument_types: Wrappers around a single argument expression
        join_receivers: Receiver type names for the when-all/when-any idioms
        when_all_members: Members that wait for several operations
        when_any_members: Members that wait for the first of several operations
        test_attributes: Attribute/annotation names that mark tests
    """

    language: str
    class_types: frozenset[str] = field(default_factory=frozenset)
    interface_types: frozenset[str] = field(default_factory=frozenset)
    enum_types: frozenset[str] = field(default_factory=frozenset)
    method_types: frozenset[str] = field(default_factory=frozenset)
    property_types: frozenset[str] = field(default_factory=frozenset)
    scope_types: frozenset[str] = field(default_factory=frozenset)
    invocation_types: frozenset[str] = field(default_factory=frozenset)
    await_types: frozenset[str] = field(default_factory=frozenset)
    await_flag_types: frozenset[str] = field(default_factory=frozenset)
    suspension_members: frozenset[str] = field(default_factory=frozenset)
    async_modifiers: frozenset[str] = field(default_factory=frozenset)
    async_return_types: frozenset[str] = field(default_factory=frozenset)
    context_free_members: frozenset[str] = field(default_factory=frozenset)
    context_free_argument: str | None = None
    argument_list_types: frozenset[str] = field(default_factory=frozenset)
    argument_types: frozenset[str] = field(default_factory=frozenset)
    join_receivers: frozenset[str] = field(default_factory=frozenset)
    when_all_members: frozenset[str] = field(default_factory=frozenset)
    when_any_members: frozenset[str] = field(default_factory=frozenset)
    test_attributes: frozenset[str] = field(default_factory=frozenset)

    @property
    def type_declaration_types(self) -> frozenset[str]:
        """All declaration types that open a new member scope."""
        return self.class_types | self.interface_types | self.enum_types

    def for_language(self, language: str) -> "DialectVocabulary":
        """Return a copy tagged with another language name."""
        return replace(self, language=language)


CSHARP_VOCABULARY = DialectVocabulary(
    language="csharp",
    class_types=frozenset(
        {
            "ClassDeclaration",
            "StructDeclaration",
            "RecordDeclaration",
            "RecordStructDeclaration",
        }
    ),
    interface_types=frozenset({"InterfaceDeclaration"}),
    enum_types=frozenset({"EnumDeclaration"}),
    method_types=frozenset({"MethodDeclaration"}),
    property_types=frozenset({"PropertyDeclaration"}),
    scope_types=frozenset(
        {"LambdaExpression", "AnonymousMethodExpression", "LocalFunctionStatement"}
    ),
    invocation_types=frozenset({"InvocationExpression"}),
    await_types=frozenset({"AwaitExpression"}),
    await_flag_types=frozenset(
        {"ForeachStatement", "UsingStatement", "LocalDeclarationStatement"}
    ),
    async_modifiers=frozenset({"async"}),
    async_return_types=frozenset({"Task", "ValueTask", "IAsyncEnumerable"}),
    context_free_members=frozenset({"ConfigureAwait"}),
    context_free_argument="false",
    argument_list_types=frozenset({"ArgumentList"}),
    argument_types=frozenset({"Argument"}),
    join_receivers=frozenset({"Task", "ValueTask"}),
    when_all_members=frozenset({"WhenAll"}),
    when_any_members=frozenset({"WhenAny"}),
    test_attributes=frozenset(
        {"TestClass", "TestFixture", "TestMethod", "Fact", "Theory", "Test", "TestCase"}
    ),
)

JAVA_VOCABULARY = DialectVocabulary(
    language="java",
    class_types=frozenset({"ClassDeclaration", "RecordDeclaration"}),
    interface_types=frozenset({"InterfaceDeclaration", "AnnotationTypeDeclaration"}),
    enum_types=frozenset({"EnumDeclaration"}),
    method_types=frozenset({"MethodDeclaration"}),
    scope_types=frozenset({"LambdaExpression"}),
    invocation_types=frozenset({"MethodInvocation"}),
    suspension_members=frozenset({"join", "get"}),
    async_return_types=frozenset(
        {"CompletableFuture", "CompletionStage", "Future", "ListenableFuture"}
    ),
    context_free_members=frozenset(
        {
            "thenApplyAsync",
            "thenAcceptAsync",
            "thenRunAsync",
            "thenComposeAsync",
            "thenCombineAsync",
            "whenCompleteAsync",
            "handleAsync",
        }
    ),
    argument_list_types=frozenset({"ArgumentList"}),
    join_receivers=frozenset({"CompletableFuture"}),
    when_all_members=frozenset({"allOf"}),
    when_any_members=frozenset({"anyOf"}),
    test_attributes=frozenset(
        {"Test", "ParameterizedTest", "RepeatedTest", "TestFactory"}
    ),
)


def base_type_name(type_text: str) -> str:
    """Reduce a type reference to its simple name.

    ``System.Threading.Tasks.Task<List<int>>`` -> ``Task``,
    ``CompletableFuture<Void>`` -> ``CompletableFuture``, ``Task?`` -> ``Task``.
    """
    head = type_text.split("<", 1)[0].strip().rstrip("?").strip()
    return head.rsplit(".", 1)[-1]


def attribute_base_name(attribute_text: str) -> str:
    """Normalize an attribute name: drop namespace and ``Attribute`` suffix."""
    name = base_type_name(attribute_text.lstrip("@"))
    if name.endswith("Attribute") and name != "Attribute":
        name = name[: -len("Attribute")]
    return name
