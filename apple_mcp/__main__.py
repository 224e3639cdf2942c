#!/usr/bin/env python3
"""apple-mcp - MCP tools for Apple apps

Usage:
    apple-mcp                     # Run the stdio server (default)
    apple-mcp serve               # Run the stdio server explicitly
    apple-mcp check               # Load every backend once and report
    apple-mcp version             # Show version
"""

# Ensure Homebrew paths are in PATH (MCP clients may not inherit the shell PATH)
import os
_paths = os.environ.get("PATH", "")
for _p in ("/opt/homebrew/bin", "/usr/local/bin", "/usr/bin"):
    if _p and _p not in _paths:
        _paths = _p + os.pathsep + _paths
os.environ["PATH"] = _paths

from apple_mcp.cli import main

if __name__ == "__main__":
    main()
