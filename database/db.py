from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from utils.global_settings import settings


def _connect_args(url: str) -> dict:
    # sqlite connections are shared across the threadpool FastAPI runs sync work on
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


#creating new engine instance to interact with the database and session object
engine = create_engine(
    settings.database_url,
    echo=settings.sql_echo,
    connect_args=_connect_args(settings.database_url),
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

#base class for all models to inherit from
Base = declarative_base()

def init_db(bind=engine):
    """
    Create any missing tables. Existing rows are kept, entries are an audit trail.
    """
    # imported here so every model is registered on Base.metadata
    import database.models  # noqa: F401
    Base.metadata.create_all(bind=bind)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
