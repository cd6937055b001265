from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


__all__ = ["make_session_factory"]
