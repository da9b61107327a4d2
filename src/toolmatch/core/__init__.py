"""Core business logic — question bank, catalog, scoring, quiz session, result lifecycle.

This module is framework-agnostic. It has no dependency on MCP, SQLAlchemy,
or any server framework. The MCP server, the HTTP routes, and the tests all
import from here.
"""
