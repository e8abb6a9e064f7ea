from __future__ import annotations

from pathlib import Path
from typing import Iterator
from unittest.mock import create_autospec

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from peerfeedback import config
from peerfeedback.database import init_db, make_engine
from peerfeedback.logic import Logic, get_logic
from peerfeedback.main import app
from peerfeedback.utils.data_bundle import DataBundle, import_data_bundle
from peerfeedback.utils.emails import (
    EmailGenerator,
    EmailSender,
    EmailSendingStatus,
    EmailWrapper,
    get_email_generator,
    get_email_sender,
)

DATA_DIR = Path(__file__).parent / "data"
ADMIN_GOOGLE_ID = "app.admin"


class MockEmailSender(EmailSender):
    """Запоминает отправленные письма; может имитировать сбой доставки."""

    def __init__(self) -> None:
        self.should_fail = False
        self.sent: list[EmailWrapper] = []

    def send_email(self, email: EmailWrapper) -> EmailSendingStatus:
        if self.should_fail:
            return EmailSendingStatus(False, "Mock email sending failure")
        self.sent.append(email)
        return EmailSendingStatus(True)


@pytest.fixture(autouse=True)
def admins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "APP_ADMINS", [ADMIN_GOOGLE_ID])


@pytest.fixture()
def db_session() -> Iterator[Session]:
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def typical_bundle(db_session: Session) -> DataBundle:
    return import_data_bundle(db_session, DATA_DIR / "typical_data_bundle.yaml")


@pytest.fixture()
def logic(db_session: Session) -> Logic:
    return Logic(db_session)


@pytest.fixture()
def mock_logic():
    return create_autospec(Logic, instance=True)


@pytest.fixture()
def mock_email_generator():
    return create_autospec(EmailGenerator, instance=True)


@pytest.fixture()
def mock_email_sender() -> MockEmailSender:
    return MockEmailSender()


@pytest.fixture()
def client(mock_logic, mock_email_generator, mock_email_sender) -> Iterator[TestClient]:
    """Клиент, у которого слой логики и почта подменены дублёрами."""
    app.dependency_overrides[get_logic] = lambda: mock_logic
    app.dependency_overrides[get_email_generator] = lambda: mock_email_generator
    app.dependency_overrides[get_email_sender] = lambda: mock_email_sender
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def db_client(logic: Logic, mock_email_sender) -> Iterator[TestClient]:
    """Клиент поверх настоящей (in-memory) базы; подменена только отправка писем."""
    app.dependency_overrides[get_logic] = lambda: logic
    app.dependency_overrides[get_email_sender] = lambda: mock_email_sender
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def login_as(google_id: str | None) -> dict:
    if google_id is None:
        return {}
    return {"Authorization": f"Bearer {google_id}"}


def login_as_admin() -> dict:
    return login_as(ADMIN_GOOGLE_ID)
