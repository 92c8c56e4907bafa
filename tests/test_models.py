from sqlalchemy import select
from sqlalchemy.orm import Session

import config
import db_init
from clustering import kmeans
from models import (
    ClusterRun,
    IterationLog,
    add_point,
    get_point_set,
    load_points,
    record_run,
    replace_points,
)


def test_seed_creates_sample_point_set(engine):
    with Session(engine) as session:
        points = load_points(session, config.DEFAULT_POINT_SET)
    assert points == [(float(x), float(y)) for x, y in config.SAMPLE_POINTS]


def test_seed_is_idempotent(engine):
    db_init.seed(engine=engine)
    with Session(engine) as session:
        assert len(load_points(session, config.DEFAULT_POINT_SET)) == len(config.SAMPLE_POINTS)


def test_add_point_appends_in_order(engine):
    with Session(engine) as session:
        pos = add_point(session, config.DEFAULT_POINT_SET, 1.5, 2.5)
        session.commit()
    assert pos == len(config.SAMPLE_POINTS)

    with Session(engine) as session:
        assert load_points(session, config.DEFAULT_POINT_SET)[-1] == (1.5, 2.5)


def test_add_point_creates_missing_set(engine):
    with Session(engine) as session:
        assert add_point(session, "fresh", 3, 4) == 0
        session.commit()
        assert load_points(session, "fresh") == [(3.0, 4.0)]


def test_replace_points(engine, two_blobs):
    with Session(engine) as session:
        n = replace_points(session, config.DEFAULT_POINT_SET, two_blobs)
        session.commit()
    assert n == 6
    with Session(engine) as session:
        assert load_points(session, config.DEFAULT_POINT_SET) == [(float(x), float(y)) for x, y in two_blobs]


def test_load_points_of_unknown_set(engine):
    with Session(engine) as session:
        assert load_points(session, "missing") == []


def test_record_run_stores_result_and_trace(engine, two_blobs):
    result = kmeans(two_blobs, 2)
    with Session(engine) as session:
        ps = get_point_set(session, "blobs", create=True)
        run = record_run(session, ps, result, 100)
        session.commit()
        run_id = run.id

    with Session(engine) as session:
        run = session.get(ClusterRun, run_id)
        assert run.algorithm == "kmeans"
        assert run.status == "converged"
        assert run.iterations == 3
        assert [a.cluster for a in run.assignments] == [0, 0, 0, 1, 1, 1]
        assert [(r.x, r.y) for r in run.representatives] == result.representatives
        rows = session.execute(select(IterationLog).where(IterationLog.run_id == run_id)).scalars().all()
        assert len(rows) == 3 * 2 * 2
        first = [(e.cluster, e.stage, e.x, e.y) for e in run.log if e.iteration == 0]
        assert first == [
            (0, "initial", 0.0, 0.0),
            (1, "initial", 1.0, 0.0),
            (0, "updated", 0.0, 0.5),
            (1, "updated", 8.0, 7.75),
        ]


def test_sqlite_path():
    assert db_init.sqlite_path("sqlite:///clusters.db") == "clusters.db"
    assert db_init.sqlite_path("sqlite://") is None
    assert db_init.sqlite_path("postgresql://localhost/db") is None
