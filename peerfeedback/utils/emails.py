from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from enum import Enum
from urllib.parse import urlencode

from fastapi import Depends
from jinja2 import Environment, BaseLoader, select_autoescape

from peerfeedback import config
from peerfeedback.errors import EntityDoesNotExistError
from peerfeedback.logic import Logic, get_logic

logger = logging.getLogger(__name__)


class EmailType(str, Enum):
    INSTRUCTOR_COURSE_LINKS_REGENERATED = "INSTRUCTOR_COURSE_LINKS_REGENERATED"
    STUDENT_COURSE_LINKS_REGENERATED = "STUDENT_COURSE_LINKS_REGENERATED"

    @property
    def subject(self) -> str:
        return _SUBJECTS[self]


_SUBJECTS = {
    EmailType.INSTRUCTOR_COURSE_LINKS_REGENERATED:
        "Your access link for course [{course_name}] ({course_id}) has been regenerated",
    EmailType.STUDENT_COURSE_LINKS_REGENERATED:
        "Your access links for course [{course_name}] ({course_id}) have been regenerated",
}


@dataclass
class EmailWrapper:
    recipient: str
    subject: str
    content: str
    type: EmailType
    # берём из config в момент создания письма, а не при импорте модуля
    sender_email: str = field(default_factory=lambda: config.EMAIL_SENDER_ADDRESS)
    sender_name: str = field(default_factory=lambda: config.EMAIL_SENDER_NAME)


@dataclass
class EmailSendingStatus:
    success: bool
    message: str = ""

    def is_success(self) -> bool:
        return self.success


_templates = Environment(loader=BaseLoader(), autoescape=select_autoescape(default=True))

COURSE_LINKS_TEMPLATE = _templates.from_string("""\
<p>Hello {{ name }},</p>
<p>The access link for the course <b>{{ course_name }}</b> ({{ course_id }}) has been regenerated.
Links sent to you earlier for this course no longer work.</p>
<p>To join the course, use this link: <a href="{{ join_url }}">{{ join_url }}</a></p>
{% if sessions %}
<p>Feedback sessions in this course:</p>
<ul>
{% for session in sessions %}
  <li>{{ session.name }} (closes {{ session.end_time }}):
    <a href="{{ session.submit_url }}">submit</a> |
    <a href="{{ session.results_url }}">results</a></li>
{% endfor %}
</ul>
{% else %}
<p>There are no feedback sessions in this course yet.</p>
{% endif %}
<p>If you did not request this, please contact the course administrator.</p>
""")


class EmailGenerator:
    """Собирает письма; ничего не отправляет."""

    def __init__(self, logic: Logic, frontend_url: str = config.FRONTEND_URL):
        self.logic = logic
        self.frontend_url = frontend_url.rstrip("/")

    def _link(self, path: str, **params) -> str:
        return f"{self.frontend_url}{path}?{urlencode(params)}"

    def generate_feedback_session_summary_of_course(
        self, course_id: str, email: str, email_type: EmailType
    ) -> EmailWrapper:
        course = self.logic.get_course(course_id)
        if course is None:
            raise EntityDoesNotExistError(f"Course {course_id} does not exist.")
        instructor = self.logic.get_instructor_for_email(course_id, email)
        if instructor is None:
            raise EntityDoesNotExistError(f"Instructor {email} does not exist in course {course_id}.")

        key = instructor.reg_key
        sessions = [
            {
                "name": session.name,
                "end_time": session.end_time,
                "submit_url": self._link("/web/instructor/sessions/submission",
                                         courseid=course.id, fsname=session.name, key=key),
                "results_url": self._link("/web/instructor/sessions/result",
                                          courseid=course.id, fsname=session.name, key=key),
            }
            for session in self.logic.get_feedback_sessions_for_course(course.id)
        ]
        content = COURSE_LINKS_TEMPLATE.render(
            name=instructor.name,
            course_name=course.name,
            course_id=course.id,
            join_url=self._link("/web/join", key=key, entitytype="instructor"),
            sessions=sessions,
        )
        return EmailWrapper(
            recipient=instructor.email,
            subject=email_type.subject.format(course_name=course.name, course_id=course.id),
            content=content,
            type=email_type,
        )


class EmailSender:
    """Интерфейс отправки. Ошибки доставки не бросаются, а возвращаются в статусе."""

    def send_email(self, email: EmailWrapper) -> EmailSendingStatus:
        raise NotImplementedError


class SmtpEmailSender(EmailSender):
    def __init__(self, host: str = config.SMTP_HOST, port: int = config.SMTP_PORT,
                 username: str | None = config.SMTP_USERNAME, password: str | None = config.SMTP_PASSWORD,
                 use_tls: bool = config.SMTP_USE_TLS, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @staticmethod
    def _to_message(email: EmailWrapper) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = email.subject
        message["From"] = f"{email.sender_name} <{email.sender_email}>"
        message["To"] = email.recipient
        message.set_content("This email requires an HTML-capable client.")
        message.add_alternative(email.content, subtype="html")
        return message

    def send_email(self, email: EmailWrapper) -> EmailSendingStatus:
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(self._to_message(email))
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send %s email to %s: %s", email.type.value, email.recipient, e)
            return EmailSendingStatus(False, str(e))
        logger.info("Sent %s email to %s", email.type.value, email.recipient)
        return EmailSendingStatus(True)


class LoggingEmailSender(EmailSender):
    """
    Отправитель для режима разработки (ENABLE_EMAIL=False): письмо только
    пишется в лог, а статус всегда успешный. Поэтому ответы вида
    "... and the email has been sent." в этом режиме не означают доставку.
    """

    def send_email(self, email: EmailWrapper) -> EmailSendingStatus:
        logger.warning("Email sending disabled; would send %s email to %s", email.type.value, email.recipient)
        return EmailSendingStatus(True)


def get_email_generator(logic: Logic = Depends(get_logic)) -> EmailGenerator:
    return EmailGenerator(logic)


def get_email_sender() -> EmailSender:
    if config.ENABLE_EMAIL:
        return SmtpEmailSender()
    return LoggingEmailSender()
