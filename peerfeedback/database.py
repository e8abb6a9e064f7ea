from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from peerfeedback import config

Base = declarative_base()


def make_engine(url: str | None = None) -> Engine:
    """
    Создаёт движок. Для SQLite включаем внешние ключи на каждом соединении,
    иначе ON DELETE и проверки FK там не работают.
    """
    # Фолбэк на локальную SQLite, если переменная не задана
    if not url or not url.strip():
        db_path = Path(__file__).with_name("app.db")
        url = f"sqlite:///{db_path}"

    if url.startswith("sqlite"):
        options = {}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # одна БД в памяти на все потоки
            options["poolclass"] = StaticPool
        engine = create_engine(url, connect_args={"check_same_thread": False}, **options)

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        engine = create_engine(url, pool_pre_ping=True)
    return engine


engine = make_engine(config.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    # регистрируем все таблицы в Base.metadata
    from peerfeedback import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
