"""
Assessment session engine.

Selection, attempt state machines, timing and report lookup.
"""

from assessment.engine.diagnostic import DiagnosticAttemptManager
from assessment.engine.locks import AttemptLocks
from assessment.engine.mock_selector import MockBlueprint, MockTestSelector
from assessment.engine.mock_test import BatchAnswer, MockTestAttemptManager
from assessment.engine.report import ReportService
from assessment.engine.selector import ItemCandidate, QuestionSelector, SelectionQuota, SelectionResult
from assessment.engine.sweeper import AttemptSweeper

__all__ = [
    "AttemptLocks",
    "AttemptSweeper",
    "BatchAnswer",
    "DiagnosticAttemptManager",
    "ItemCandidate",
    "MockBlueprint",
    "MockTestAttemptManager",
    "MockTestSelector",
    "QuestionSelector",
    "ReportService",
    "SelectionQuota",
    "SelectionResult",
]
