"""
Operator command: create the tables and load the default subject taxonomy.

    python -m pyqbank.init_db

Safe to run repeatedly; existing subjects are left untouched.
"""
import asyncio
import logging

from pyqbank.database import AsyncSessionLocal, Base, engine
from pyqbank.models import Question, Subject, SubjectTopic  # noqa: F401
from pyqbank.services.subject_service import SubjectService

logger = logging.getLogger(__name__)


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        result = await SubjectService.seed_subjects(session, user_id="init_db")
        print(f"{result['message']} ({result['count']} subjects).")

    await engine.dispose()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    asyncio.run(init_db())
