import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from peerfeedback import config
from peerfeedback.database import init_db
from peerfeedback.errors import install_exception_handlers
from peerfeedback.routers import auth as auth_router, course as course_router, instructor as instructor_router


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    yield


configure_logging()

app = FastAPI(title="Peer Feedback", lifespan=lifespan)
install_exception_handlers(app)

app.include_router(auth_router.router)
app.include_router(course_router.router)
app.include_router(instructor_router.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("peerfeedback.main:app", host="127.0.0.1", port=8000, reload=True)
