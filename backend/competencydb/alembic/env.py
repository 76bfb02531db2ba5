# backend/competencydb/alembic/env.py

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from competencydb.database import Base, write_engine  # noqa: E402
from competencydb.apps.accounts import models as _accounts  # noqa: F401, E402
from competencydb.apps.audit import models as _audit  # noqa: F401, E402
from competencydb.apps.competencies import models as _competencies  # noqa: F401, E402
from competencydb.apps.numbering import models as _numbering  # noqa: F401, E402
from competencydb.apps.project_assignment import models as _project_assignment  # noqa: F401, E402
from competencydb.apps.training_batches import models as _training_batches  # noqa: F401, E402
from competencydb.apps.training_requests import models as _training_requests  # noqa: F401, E402
from competencydb.apps.validation import models as _validation  # noqa: F401, E402

target_metadata = Base.metadata


def _offline_url() -> str:
    configured = (config.get_main_option("sqlalchemy.url") or "").strip()
    if configured and not configured.startswith("driver://"):
        return configured
    url = (os.getenv("DATABASE_WRITE_URL") or os.getenv("DATABASE_URL") or "").strip()
    if not url:
        raise RuntimeError("Offline migrations need sqlalchemy.url or DATABASE_WRITE_URL / DATABASE_URL.")
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=_offline_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with write_engine.connect() as connection:
        # SQLite cannot ALTER most constraints in place.
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
