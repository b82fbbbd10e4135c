"""Developer tooling for integration packages: stack compatibility, CODEOWNERS, coverage and import helpers."""

__version__ = "0.1.0"