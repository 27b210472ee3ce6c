"""Entry point for running polyast as a module.

Usage:
    python -m polyast [command] [options]

Example:
    python -m polyast analyze src/MyApp/MyApp.csproj
    python -m polyast languages
"""

from polyast.cli import app

if __name__ == "__main__":
    app()
