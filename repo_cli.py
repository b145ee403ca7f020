#!/usr/bin/env python3
"""Script wrapper for the repository tool."""

from __future__ import annotations

import sys

from repo_tool.main import main


if __name__ == "__main__":
    sys.exit(main())
