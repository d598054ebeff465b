# SPDX-License-Identifier: MIT
"""Core environment resolution and build planning."""
