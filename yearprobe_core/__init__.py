# Copyright (C) 2025 YearProbe Contributors
#
# This file is part of YearProbe Engine.
#
# YearProbe Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
YearProbe Core Engine
=====================

Evidence-based release-year resolution for artist/title pairs.
"""

__version__ = "0.4.0"

# Bump when query templates or arbitration prompts change.
QUERY_STRATEGY_VERSION = "base4_retry2_v1"
ARBITER_PROMPT_VERSION = "arbiter_v2"
