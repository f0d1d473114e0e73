"""
FamilySync - Source Package

A household organiser for a shared family screen: chores that pay
points, a reward shop, a meal planner, a shared calendar and a photo
slideshow.

DESIGN PRINCIPLES:
1. One explicit store is the single source of truth
2. State changes are pure functions, applied completely or not at all
3. Every change is persisted immediately and audited
4. External services are optional and never block local changes
"""

__version__ = "1.0.0"
__author__ = "FamilySync Team"
