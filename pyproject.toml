[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pkgdevtools"
version = "0.1.0"
description = "Developer tooling for integration packages: stack compatibility checks, CODEOWNERS validation, coverage merging and package import helpers."
requires-python = ">=3.10"
keywords = [
    "integrations",
    "packages",
    "codeowners",
    "coverage",
    "kibana",
    "semver",
    "ci",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: Software Development :: Quality Assurance",
]
dependencies = [
    "pyyaml>=6.0",
    "pillow>=10.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["pkgdevtools"]

[tool.hatch.build.targets.sdist]
include = [
    "pkgdevtools",
    "tests",
    "README.md",
    "pyproject.toml",
]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
