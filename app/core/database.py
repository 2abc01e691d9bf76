from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from app.core.config import settings
from app.core.exceptions import ConfigurationError

# No engine until DATABASE_URL is set; requests then fail with a configuration error
engine = (
    create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    if settings.DATABASE_URL
    else None
)

# Talk to the DB through async sessions without refreshes after closed conn to avoid errors in async programming
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


# This is the "Bridge" that gives my routes access to postgres
async def get_db():
    if engine is None:
        raise ConfigurationError("Missing configuration: DATABASE_URL")
    async with AsyncSessionLocal() as session:
        yield session


# All the models are "stored" in the Base class will be processed by the Engine
class Base(DeclarativeBase):
    pass
