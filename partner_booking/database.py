from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from partner_booking.core import config


def build_engine(database_url: str):
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, echo=config.DATABASE_ECHO, connect_args=connect_args)


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_indexes_checked = False

INDEX_STATEMENTS = [
    ('bookings', 'CREATE INDEX IF NOT EXISTS idx_bookings_partner_date ON bookings(partner_id, booking_date)'),
    ('bookings', 'CREATE INDEX IF NOT EXISTS idx_bookings_service_date ON bookings(service_id, booking_date)'),
    ('bookings', 'CREATE INDEX IF NOT EXISTS idx_bookings_user_free ON bookings(user_id, is_free_checkup)'),
    ('partner_days_off', 'CREATE INDEX IF NOT EXISTS idx_days_off_partner ON partner_days_off(partner_id)'),
]


def ensure_indexes() -> None:
    """Create the lookup indexes used by slot and eligibility queries."""
    global _indexes_checked

    if _indexes_checked:
        return

    with _schema_lock:
        if _indexes_checked:
            return

        existing_tables = set(inspect(engine).get_table_names())

        with engine.begin() as connection:
            for table_name, statement in INDEX_STATEMENTS:
                if table_name in existing_tables:
                    connection.execute(text(statement))

        _indexes_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
