from sqlalchemy.orm import declarative_base

from shared.config import ACCESS_DB
from shared.database import get_engine, get_session

if not ACCESS_DB:
    raise RuntimeError("ACCESS_DB environment variable is not set")

engine = get_engine(ACCESS_DB)
SessionLocal = get_session(engine)

Base = declarative_base()
