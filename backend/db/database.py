from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from config import MONGODB_URL

_client: AsyncIOMotorClient | None = None


def _database_name() -> str:
    return MONGODB_URL.rsplit("/", 1)[-1].split("?")[0]


async def init_db():
    global _client

    from .models import (
        EmployeeDoc,
        EmployeeDocumentDoc,
        TaskCodeDoc,
        TimesheetDoc,
        TimesheetEntryDoc,
        ComplianceCheckLogDoc,
    )

    _client = AsyncIOMotorClient(MONGODB_URL)
    database = _client[_database_name()]

    await init_beanie(
        database=database,
        document_models=[
            EmployeeDoc,
            EmployeeDocumentDoc,
            TaskCodeDoc,
            TimesheetDoc,
            TimesheetEntryDoc,
            ComplianceCheckLogDoc,
        ],
    )

    return database


def get_client() -> AsyncIOMotorClient:
    if _client is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _client


def get_database():
    return get_client()[_database_name()]


async def close_db():
    global _client
    if _client is not None:
        _client.close()
        _client = None
