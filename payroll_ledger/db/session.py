from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, scoped_session, declarative_base
from sqlalchemy.pool import StaticPool

from payroll_ledger.core.config import settings

Base = declarative_base()

def make_engine(db_url: str, echo: bool = False):
    url = make_url(db_url)
    kwargs = {}
    if url.get_backend_name() == "sqlite":
        # Concurrent payments run on separate threads
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            # one shared connection, otherwise each checkout sees an empty database
            kwargs["poolclass"] = StaticPool
    return create_engine(db_url, echo=echo, future=True, **kwargs)

def make_session_factory(bind):
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)

engine = make_engine(settings.DB_URL)
SessionLocal = scoped_session(make_session_factory(engine))

def init_db(bind=None):
    bind = bind or engine
    if bind.url.get_backend_name() == "sqlite" and bind.url.database not in (None, "", ":memory:"):
        Path(bind.url.database).parent.mkdir(parents=True, exist_ok=True)
    # Import models here so they are registered on Base
    import payroll_ledger.db.models as _models  # noqa: F401
    Base.metadata.create_all(bind=bind)
    return bind
