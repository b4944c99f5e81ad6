from sqlalchemy.orm import declarative_base

from shared.config import SCHEDULING_DB
from shared.database import get_engine, get_session

if not SCHEDULING_DB:
    raise RuntimeError("SCHEDULING_DB environment variable is not set")

engine = get_engine(SCHEDULING_DB)
SessionLocal = get_session(engine)

Base = declarative_base()
