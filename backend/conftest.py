from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"

from competencydb.database import Base  # noqa: E402
from competencydb.apps.accounts import models as account_models  # noqa: E402
from competencydb.apps.audit import models as audit_models  # noqa: E402
from competencydb.apps.competencies import models as competency_models  # noqa: E402
from competencydb.apps.numbering import models as numbering_models  # noqa: E402
from competencydb.apps.project_assignment import models as par_models  # noqa: E402
from competencydb.apps.training_batches import models as batch_models  # noqa: E402
from competencydb.apps.training_requests import models as tr_models  # noqa: E402
from competencydb.apps.validation import models as validation_models  # noqa: E402


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(
        bind=engine,
        tables=[
            account_models.Role.__table__,
            account_models.RolePermission.__table__,
            account_models.User.__table__,
            competency_models.Competency.__table__,
            competency_models.CompetencyLevel.__table__,
            competency_models.CompetencyTrainer.__table__,
            numbering_models.SequenceCounter.__table__,
            batch_models.TrainingBatch.__table__,
            tr_models.TrainingRequest.__table__,
            batch_models.TrainingBatchSession.__table__,
            batch_models.TrainingBatchLearner.__table__,
            batch_models.AttendanceRecord.__table__,
            batch_models.HomeworkRecord.__table__,
            validation_models.ValidationProjectApproval.__table__,
            validation_models.ValidationScheduleRequest.__table__,
            par_models.ProjectAssignmentRequest.__table__,
            audit_models.AuditLogEntry.__table__,
            audit_models.ActivityLogEntry.__table__,
        ],
    )
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
