# scripts/seed.py
# Adds a reproducible "blobs" point set: gaussian clouds around fixed centres.
# Run from the project root: python -m scripts.seed [set-name]
import random
import sys

from sqlalchemy.orm import Session

import config
import db_init
from models import replace_points

DB = config.DATABASE_URL
CENTRES = [(20.0, 20.0), (80.0, 30.0), (50.0, 85.0)]


def blob_points(centres=CENTRES, per_centre=15, spread=6.0, seed=42):
    rng = random.Random(seed)
    points = []
    for _ in range(per_centre):
        for cx, cy in centres:
            points.append((round(rng.gauss(cx, spread), 2), round(rng.gauss(cy, spread), 2)))
    return points


def seed(name='blobs'):
    engine = db_init.seed(DB)
    with Session(engine) as session:
        n = replace_points(session, name, blob_points())
        session.commit()
    print(f"Seed complete: {n} points in set '{name}'")


if __name__ == "__main__":
    seed(*sys.argv[1:2])
