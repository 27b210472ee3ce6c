"""Shared pytest fixtures for polyast tests.

This module provides common fixtures used across unit and integration tests.
Fixtures are organized by category:
- Path fixtures: Sample projects on disk
- Analyzer fixtures: Analyzers and registries
- Source fixtures: Representative sources for each dialect
"""

import logging
from pathlib import Path

import pytest

from polyast.analyzers import (
    AnalyzerRegistry,
    CSharpAnalyzer,
    JavaAnalyzer,
    RazorAnalyzer,
    reset_registry,
    setup_default_analyzers,
)
from polyast.utils.logging import ROOT_LOGGER_NAME

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_repos_dir(fixtures_dir: Path) -> Path:
    """Return the path to sample repository fixtures."""
    return fixtures_dir / "sample_repos"


@pytest.fixture
def dotnet_solution_dir(sample_repos_dir: Path) -> Path:
    """Return the path to the sample .NET solution."""
    return sample_repos_dir / "dotnet_solution"


@pytest.fixture
def java_project_dir(sample_repos_dir: Path) -> Path:
    """Return the path to the sample Maven project."""
    return sample_repos_dir / "java_project"


# =============================================================================
# Analyzer Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _fresh_global_registry():
    """Isolate tests from the process-wide registry."""
    reset_registry()
    yield
    reset_registry()


@pytest.fixture(autouse=True)
def _restore_polyast_logger():
    """Undo handlers installed by setup_logging during a test."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def registry() -> AnalyzerRegistry:
    """Return a frozen registry with the default analyzers."""
    return setup_default_analyzers(AnalyzerRegistry()).freeze()


@pytest.fixture
def csharp() -> CSharpAnalyzer:
    return CSharpAnalyzer()


@pytest.fixture
def java() -> JavaAnalyzer:
    return JavaAnalyzer()


@pytest.fixture
def razor() -> RazorAnalyzer:
    return RazorAnalyzer()


# =============================================================================
# Source Fixtures
# =============================================================================


@pytest.fixture
def csharp_source() -> str:
    """Return a C# file exercising declarations and async idioms."""
    return '''using System.Threading.Tasks;
using static System.Math;

namespace Billing
{
    [TestClass]
    public sealed class InvoiceService : ServiceBase, IInvoiceService
    {
        public decimal Total { get; private set; }

        public string Name { get; }

        public async Task<decimal> ComputeAsync(int id)
        {
            var invoice = await _repository.LoadAsync(id).ConfigureAwait(false);
            await foreach (var line in invoice.LinesAsync())
            {
                Total += line.Amount;
            }
            return Total;
        }

        public Task WaitAllAsync(Task first, Task second)
        {
            return Task.WhenAll(first, second);
        }

        public void Reset()
        {
            Func<Task> later = async () => await Task.Delay(1);
            Total = 0;
        }
    }

    public interface IInvoiceService
    {
        Task<decimal> ComputeAsync(int id);
    }

    public enum InvoiceState
    {
        Draft,
        Sent,
    }
}
'''


@pytest.fixture
def java_source() -> str:
    """Return a Java file exercising declarations and future idioms."""
    return """package com.example.billing;

import java.util.concurrent.CompletableFuture;
import static java.util.Objects.requireNonNull;

@Service
public class InvoiceService extends ServiceBase implements InvoiceApi, AutoCloseable {
    public CompletableFuture<Long> computeAsync(long id) {
        return repository.loadAsync(id).thenApplyAsync(invoice -> invoice.total());
    }

    public CompletableFuture<Object> firstOf(CompletableFuture<?> a, CompletableFuture<?> b) {
        return CompletableFuture.anyOf(a, b);
    }

    public long computeNow(long id) {
        return computeAsync(id).join();
    }

    public CompletableFuture<Long> chained(long id) {
        long base = computeAsync(id).join();
        return CompletableFuture.completedFuture(base + computeAsync(id).get());
    }

    @Override
    public void close() {
    }
}

interface InvoiceApi {
    CompletableFuture<Long> computeAsync(long id);
}

enum InvoiceState { DRAFT, SENT }
"""


@pytest.fixture
def razor_source() -> str:
    """Return a Razor view mixing markup, directives and code."""
    return """@model Billing.Invoice
@using System.Linq
@* Invoice details *@
@{
    var count = Model.Lines.Count();
}
<div class="invoice">
    <h2>Invoice @Model.Number</h2>
    <p>Questions? Mail billing@example.com</p>
    @foreach (var line in Model.Lines)
    {
        <p>@line.Description: @(line.Amount * 2)</p>
    }
</div>
@functions {
    public string Format(decimal value)
    {
        return value.ToString("C");
    }
}
"""
