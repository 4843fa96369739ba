from sqlmodel import SQLModel, create_engine, Session

from vanguard_desk.core.config import settings

engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
)


def register_models() -> None:
    import vanguard_desk.models.thread  # noqa: F401 - ensure models are registered
    import vanguard_desk.models.user  # noqa: F401


def init_db() -> None:
    register_models()
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
