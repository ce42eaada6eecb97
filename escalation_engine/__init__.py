"""Crisis escalation detection and predictive risk scoring for forum posts."""

__version__ = "1.0.0"
