"""
mesocoach: adaptive session generation for personal-training coaching.

Builds each workout from the trainee's block position, weekly muscle volume,
exercise history and readiness, and explains every decision it makes.
"""

__version__ = "0.1.0"
