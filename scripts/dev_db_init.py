# scripts/dev_db_init.py
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir)))

from app import create_app  # noqa: E402
from extensions import db  # noqa: E402
from seed import seed_all  # noqa: E402

if __name__ == "__main__":
    app = create_app("dev")
    with app.app_context():
        db.create_all()
        seed_all()
        print("DB initialized and seeded")
