"""MCP server and client exposing rust-analyzer language features as tools."""

__version__ = "0.1.0"