# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
YearProbe CLI Module

Command-line front end for release-year research.

Commands:
- research <artist> <title>: Resolve the original release year

Usage:
    python -m yearprobe_cli research "a-ha" "Take On Me"
    python -m yearprobe_cli research "a-ha" "Take On Me" --json
"""

from yearprobe_cli.research_cmd import main

__all__ = ["main"]
