"""
Triage Package

Model-backed classification of inbound support threads.
"""

from support_agent.triage.classifier import TriageClassifier, parse_classification
from support_agent.triage.models import ClassificationResult

__all__ = [
    "ClassificationResult",
    "TriageClassifier",
    "parse_classification",
]
