from brightpath.models.family import Family, FamilyPreferences
from brightpath.models.child import Child
from brightpath.models.subject import Subject
from brightpath.models.commitment import Commitment
from brightpath.models.evaluator_model import EvaluatorModel
from brightpath.models.schedule import Schedule, ScheduleItem
from brightpath.models.activity_log import ActivityLog
from brightpath.models.feedback import Feedback

__all__ = [
    "Family",
    "FamilyPreferences",
    "Child",
    "Subject",
    "Commitment",
    "EvaluatorModel",
    "Schedule",
    "ScheduleItem",
    "ActivityLog",
    "Feedback",
]
