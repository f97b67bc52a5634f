"""
Background Jobs for Fluxo.

This module contains scheduled jobs:
- maintenance: Invitation expiry and notification retention
"""

from .maintenance import run_maintenance_job

__all__ = ["run_maintenance_job"]
