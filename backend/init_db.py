from pathlib import Path

from db import Base, DATABASE_URL, engine
import models  # noqa: F401  (registers tables on Base.metadata)


def init_db():
    if DATABASE_URL.startswith("sqlite:///"):
        db_path = DATABASE_URL[len("sqlite:///"):]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    init_db()
