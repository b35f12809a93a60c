import os

# Must be set before smart_attendance.config is imported anywhere
os.environ["SMART_ATTENDANCE_DATABASE_URL"] = "sqlite://"
os.environ["SMART_ATTENDANCE_LOG_DIR"] = ""

import pytest
from sqlalchemy.orm import sessionmaker

from smart_attendance.utils.db import init_db, make_engine
from smart_attendance.utils.store import AttendanceStore


@pytest.fixture
def store():
    engine = make_engine("sqlite://")
    init_db(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    yield AttendanceStore(factory)
    engine.dispose()
