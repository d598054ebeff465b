# SPDX-License-Identifier: MIT
"""Runtime detection and project configuration."""
