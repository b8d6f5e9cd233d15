"""
tutorquiz - adaptive quiz question selection, scoring and evaluation.

Selection strategies pick and snapshot questions for an attempt, validators
grade answers against the snapshots, the session scorer turns outcomes into
scores, and the evaluation generator produces post-hoc analytics.
"""

__version__ = "1.0.0"
