"""
MixMind: adaptive lesson scheduling for bartending lessons.

Components:
- placement: onboarding survey -> initial level, track, spirit focus
- content: lesson item catalog and its indexes
- study: mastery tracking, session mixing, progress recording
- storage: mastery store backends
- analytics: event models and delivery sinks
"""

__version__ = "1.0.0"
