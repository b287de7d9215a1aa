from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from consultation.core import config


connect_args = {'check_same_thread': False} if config.DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(config.DATABASE_URL, echo=config.SQL_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_identity_schema_checked = False


def ensure_identity_schema() -> None:
    """Bring an older identity database up to the columns the directory reads."""
    global _identity_schema_checked

    if _identity_schema_checked:
        return

    with _schema_lock:
        if _identity_schema_checked:
            return

        inspector = inspect(engine)

        if 'users' not in inspector.get_table_names():
            _identity_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('users')}
        migration_steps = [
            ('username', 'ALTER TABLE users ADD COLUMN username VARCHAR'),
            ('name', 'ALTER TABLE users ADD COLUMN name VARCHAR'),
            ('password', 'ALTER TABLE users ADD COLUMN password VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE UNIQUE INDEX IF NOT EXISTS idx_users_username ON users(username)')
            )
            if 'user_subjects' in inspector.get_table_names():
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_user_subjects_user ON user_subjects(user_id, subject)')
                )

        _identity_schema_checked = True
