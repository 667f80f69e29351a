[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "markthat"
version = "0.7.1"
description = "Extensible Markdown parser core with rule chains, a syntax tree and an HTML renderer"
requires-python = ">=3.10"
dependencies = []
keywords = ["markdown", "commonmark", "parser", "html", "ast"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Text Processing :: Markup :: Markdown",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["markthat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
