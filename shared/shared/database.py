from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker


def get_engine(database_url: str, **kwargs):
    return create_async_engine(database_url, echo=False, future=True, **kwargs)


def get_session(engine):
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False
    )
