"""
Core package for Smart Study Planner.

Error taxonomy, data model, the do-not-disturb contract and service
wiring. Zero UI dependencies.
"""

from core.errors import StudyPlannerError
from core.models import Result

__all__ = ["StudyPlannerError", "Result"]
