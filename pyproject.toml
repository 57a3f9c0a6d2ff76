[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ra-mcp"
version = "0.1.0"
description = "An MCP server that exposes rust-analyzer language features as tools"
requires-python = ">=3.10"
dependencies = []
keywords = ["mcp", "lsp", "rust-analyzer", "language-server", "json-rpc"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[project.scripts]
ra-mcp = "ra_mcp.server:main"
ra-mcp-demo = "ra_mcp.mcp_client:main"

[tool.hatch.build.targets.wheel]
packages = ["ra_mcp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
