from __future__ import annotations

import re
from logging.config import fileConfig

from alembic import context  # type: ignore[attr-defined]
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, pool

from psyrisk.infrastructure.db import get_database_url
from psyrisk.infrastructure.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _database_url() -> str:
    """``-x url=...`` first, then the ini, then the ``DB_`` settings."""
    return (
        context.get_x_argument(as_dictionary=True).get("url")
        or config.get_main_option("sqlalchemy.url")
        or get_database_url()
    )


def _numbered_revisions(context, revision, directives) -> None:  # type: ignore[unused-argument]
    # new revisions are named 0002_<message>, 0003_<message>, ...
    cmd_opts = getattr(config, "cmd_opts", None)
    if not directives or (cmd_opts and getattr(cmd_opts, "rev_id", None)):
        return
    script = directives[0]
    numbers = [
        int(m.group(1))
        for rev in ScriptDirectory.from_config(config).walk_revisions()
        if (m := re.match(r"^(\d+)", rev.revision or ""))
    ]
    slug = re.sub(r"[^a-z0-9]+", "_", (script.message or "").lower()).strip("_") or "revision"
    script.rev_id = f"{max(numbers, default=0) + 1:04d}_{slug}"


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        process_revision_directives=_numbered_revisions,
        **kwargs,
    )


def run_migrations_offline() -> None:
    url = _database_url()
    _configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        # sqlite cannot ALTER most constraints in place
        _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
