from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from pyqbank.config import DATABASE_URL, SQL_ECHO

# Create the async engine
engine = create_async_engine(DATABASE_URL, echo=SQL_ECHO)

# Create a sessionmaker bound to the engine
AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

# Create the base class for declarative models
Base = declarative_base()


# Dependency to get the database session
async def get_db():
    async with AsyncSessionLocal() as db:
        yield db


# Sessions opened outside the request, e.g. fire-and-forget counter updates
def get_session_factory():
    return AsyncSessionLocal
