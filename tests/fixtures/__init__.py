"""Test fixtures for polyast.

This package provides sample projects for integration and end-to-end testing.

Sample Repositories:
- sample_repos/dotnet_solution: A solution with an SDK-style web project
  (C# and Razor), an SDK-style test project and a legacy project holding one
  unparseable file
- sample_repos/java_project: A Maven project with main and test sources
"""

from pathlib import Path

# Path to fixtures directory
FIXTURES_DIR = Path(__file__).parent

# Path to sample repositories
SAMPLE_REPOS_DIR = FIXTURES_DIR / "sample_repos"

# Specific sample repository paths
DOTNET_SOLUTION_PATH = SAMPLE_REPOS_DIR / "dotnet_solution"
JAVA_PROJECT_PATH = SAMPLE_REPOS_DIR / "java_project"


def get_sample_repo(name: str) -> Path:
    """Get path to a sample repository.

    Raises:
        ValueError: If repository doesn't exist
    """
    repo_path = SAMPLE_REPOS_DIR / name
    if not repo_path.exists():
        raise ValueError(f"Sample repository not found: {name}")
    return repo_path
