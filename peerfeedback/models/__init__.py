from peerfeedback.models.account import Account, Notification, ReadNotification
from peerfeedback.models.course import Course, Section, FeedbackSession, DeadlineExtension
from peerfeedback.models.instructor import Instructor
from peerfeedback.models.student import Student

__all__ = [
    "Account",
    "Notification",
    "ReadNotification",
    "Course",
    "Section",
    "FeedbackSession",
    "DeadlineExtension",
    "Instructor",
    "Student",
]
