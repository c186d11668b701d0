from .question import Question
from .subject import Subject, SubjectTopic

__all__ = ["Question", "Subject", "SubjectTopic"]
