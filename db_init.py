# db_init.py
# Initialize the point-set database.
# Run standalone: python db_init.py
# Or it will be called from server.py if the database is missing.

from sqlalchemy.orm import Session

import config
from models import Base, get_engine, get_point_set, replace_points


def sqlite_path(url):
    """File path behind a sqlite URL, None for anything else (or in-memory)."""
    prefix = "sqlite:///"
    if not url.startswith(prefix):
        return None
    path = url[len(prefix):]
    return path or None


def seed(database_url=None, engine=None):
    engine = engine or get_engine(database_url or config.DATABASE_URL)
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        # ---------------- Sample points ----------------
        if get_point_set(session, config.DEFAULT_POINT_SET) is None:
            replace_points(session, config.DEFAULT_POINT_SET, config.SAMPLE_POINTS)
        session.commit()

    print("Database seeded:", engine.url)
    return engine


if __name__ == "__main__":
    seed()
