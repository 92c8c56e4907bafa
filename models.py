# models.py
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, Float, ForeignKey, create_engine, select
import datetime

Base = declarative_base()


def _now():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class PointSet(Base):
    __tablename__ = "point_sets"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_now)
    points = relationship(
        "StoredPoint", back_populates="point_set", order_by="StoredPoint.position", cascade="all, delete-orphan"
    )
    runs = relationship("ClusterRun", back_populates="point_set")


class StoredPoint(Base):
    __tablename__ = "points"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    point_set_id: Mapped[int] = mapped_column(Integer, ForeignKey("point_sets.id"))
    # input order is the point's identity
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    x: Mapped[float] = mapped_column(Float, nullable=False)
    y: Mapped[float] = mapped_column(Float, nullable=False)
    point_set = relationship("PointSet", back_populates="points")


class ClusterRun(Base):
    __tablename__ = "cluster_runs"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    point_set_id: Mapped[int] = mapped_column(Integer, ForeignKey("point_sets.id"))
    algorithm: Mapped[str] = mapped_column(String(20), nullable=False)
    k: Mapped[int] = mapped_column(Integer, nullable=False)
    max_iterations: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    iterations: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_now)
    point_set = relationship("PointSet", back_populates="runs")
    assignments = relationship(
        "RunAssignment", order_by="RunAssignment.position", cascade="all, delete-orphan"
    )
    representatives = relationship(
        "RunRepresentative", order_by="RunRepresentative.cluster", cascade="all, delete-orphan"
    )
    log = relationship(
        "IterationLog", order_by="IterationLog.id", cascade="all, delete-orphan"
    )


class RunAssignment(Base):
    __tablename__ = "run_assignments"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    run_id: Mapped[int] = mapped_column(Integer, ForeignKey("cluster_runs.id"))
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    cluster: Mapped[int] = mapped_column(Integer, nullable=False)


class RunRepresentative(Base):
    __tablename__ = "run_representatives"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    run_id: Mapped[int] = mapped_column(Integer, ForeignKey("cluster_runs.id"))
    cluster: Mapped[int] = mapped_column(Integer, nullable=False)
    x: Mapped[float] = mapped_column(Float, nullable=False)
    y: Mapped[float] = mapped_column(Float, nullable=False)


class IterationLog(Base):
    __tablename__ = "iteration_log"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    run_id: Mapped[int] = mapped_column(Integer, ForeignKey("cluster_runs.id"))
    iteration: Mapped[int] = mapped_column(Integer, nullable=False)
    cluster: Mapped[int] = mapped_column(Integer, nullable=False)
    # "initial" or "updated"
    stage: Mapped[str] = mapped_column(String(10), nullable=False)
    x: Mapped[float] = mapped_column(Float, nullable=False)
    y: Mapped[float] = mapped_column(Float, nullable=False)


def get_engine(url):
    return create_engine(url, echo=False, future=True)


def get_point_set(session, name, create=False):
    ps = session.execute(select(PointSet).filter_by(name=name)).scalar_one_or_none()
    if ps is None and create:
        ps = PointSet(name=name)
        session.add(ps)
        session.flush()
    return ps


def load_points(session, name):
    ps = get_point_set(session, name)
    if ps is None:
        return []
    return [(p.x, p.y) for p in ps.points]


def add_point(session, name, x, y):
    ps = get_point_set(session, name, create=True)
    next_pos = len(ps.points)
    ps.points.append(StoredPoint(position=next_pos, x=float(x), y=float(y)))
    session.flush()
    return next_pos


def replace_points(session, name, points):
    ps = get_point_set(session, name, create=True)
    ps.points.clear()
    session.flush()
    for pos, (x, y) in enumerate(points):
        ps.points.append(StoredPoint(position=pos, x=float(x), y=float(y)))
    session.flush()
    return len(points)


def record_run(session, point_set, result, max_iterations):
    run = ClusterRun(
        point_set_id=point_set.id,
        algorithm=result.algorithm,
        k=result.k,
        max_iterations=max_iterations,
        status=result.status.value,
        iterations=result.iterations,
    )
    for pos, cluster in enumerate(result.assignments):
        run.assignments.append(RunAssignment(position=pos, cluster=cluster))
    for cluster, (x, y) in enumerate(result.representatives):
        run.representatives.append(RunRepresentative(cluster=cluster, x=x, y=y))
    for rec in result.log:
        for stage, reps in (("initial", rec.initial), ("updated", rec.updated)):
            for cluster, (x, y) in enumerate(reps):
                run.log.append(IterationLog(iteration=rec.iteration, cluster=cluster, stage=stage, x=x, y=y))
    session.add(run)
    session.flush()
    return run
