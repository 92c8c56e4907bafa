# clustering.py
# KMeans / KMedoids over 2-D points, no external dependencies.
#
# Both algorithms share one assign -> update loop and differ only in how a
# cluster's representative is recomputed from its members.

import math
import numbers
from dataclasses import dataclass, field
from enum import Enum

from logger import get_logger

logger = get_logger("clustering")

UNASSIGNED = -1
DEFAULT_MAX_ITERATIONS = 100


class ClusteringError(ValueError):
    """Raised before any iteration runs when a run cannot start."""

    kind = "clustering_error"


class EmptyInput(ClusteringError):
    kind = "empty_input"


class InvalidClusterCount(ClusteringError):
    kind = "invalid_cluster_count"


class InvalidIterationBudget(ClusteringError):
    kind = "invalid_iteration_budget"


class MalformedPoint(ClusteringError):
    kind = "malformed_point"


class UnknownAlgorithm(ClusteringError):
    kind = "unknown_algorithm"


class Termination(Enum):
    RUNNING = "running"
    CONVERGED = "converged"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass(frozen=True)
class IterationRecord:
    iteration: int
    algorithm: str
    initial: tuple
    updated: tuple

    def to_dict(self):
        return {
            "iteration": self.iteration,
            "algorithm": self.algorithm,
            "initial": [list(p) for p in self.initial],
            "updated": [list(p) for p in self.updated],
        }


@dataclass
class ClusteringResult:
    assignments: list
    representatives: list
    log: list = field(default_factory=list)
    status: Termination = Termination.RUNNING
    algorithm: str = "kmeans"
    k: int = 0

    @property
    def iterations(self):
        return len(self.log)

    @property
    def converged(self):
        return self.status is Termination.CONVERGED

    def to_dict(self):
        return {
            "algorithm": self.algorithm,
            "k": self.k,
            "status": self.status.value,
            "assignments": list(self.assignments),
            "representatives": [list(r) for r in self.representatives],
            "log": [rec.to_dict() for rec in self.log],
        }


def distance(a, b):
    """Euclidean distance between two 2-D points."""
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2)


def mean_update(members, current):
    """Coordinate-wise mean of the cluster members."""
    n = len(members)
    mean_x = sum(p[0] for p in members) / n
    mean_y = sum(p[1] for p in members) / n
    return (mean_x, mean_y)


def medoid_update(members, current):
    """
    Member with the smallest summed distance to every other member.
    The first strict minimum wins, so ties go to the earliest input point.
    """
    best = current
    best_cost = math.inf
    for candidate in members:
        cost = sum(distance(candidate, p) for p in members)
        if cost < best_cost:
            best_cost = cost
            best = candidate
    return (best[0], best[1])


# canonical tag -> update rule
UPDATE_RULES = {
    "kmeans": mean_update,
    "kmedoids": medoid_update,
}

ALIASES = {
    "kmeans": "kmeans",
    "mean": "kmeans",
    "kmedoids": "kmedoids",
    "medoid": "kmedoids",
}


def resolve_algorithm(name):
    key = str(name or "").strip().lower()
    if key not in ALIASES:
        raise UnknownAlgorithm(f"unknown algorithm {name!r}, expected one of {sorted(ALIASES)}")
    return ALIASES[key]


def _as_point(p, index):
    try:
        x, y = p
        x, y = float(x), float(y)
    except (TypeError, ValueError) as e:
        raise MalformedPoint(f"point {index} is not an (x, y) pair: {p!r}") from e
    if not (math.isfinite(x) and math.isfinite(y)):
        raise MalformedPoint(f"point {index} has a non-finite coordinate: {p!r}")
    return (x, y)


def _validate(points, k, max_iterations):
    if not points:
        raise EmptyInput("at least one point is required")
    if isinstance(k, bool) or not isinstance(k, numbers.Integral):
        raise InvalidClusterCount(f"k must be an integer, got {k!r}")
    if k <= 0 or k > len(points):
        raise InvalidClusterCount(f"k must be between 1 and {len(points)}, got {k}")
    if isinstance(max_iterations, bool) or not isinstance(max_iterations, numbers.Integral) or max_iterations < 1:
        raise InvalidIterationBudget(f"max_iterations must be a positive integer, got {max_iterations!r}")


def initial_representatives(points, k):
    """Seed representative i with a copy of point i, for the first k points."""
    return [(p[0], p[1]) for p in points[:k]]


def _nearest(point, representatives):
    best_index = UNASSIGNED
    best_dist = math.inf
    for c, rep in enumerate(representatives):
        d = distance(point, rep)
        if d < best_dist:
            best_dist = d
            best_index = c
    return best_index


def run_clustering(points, k, algorithm="kmeans", max_iterations=DEFAULT_MAX_ITERATIONS, initial=None):
    """
    points: sequence of (x, y)
    k: number of clusters, 1 <= k <= len(points)
    algorithm: "kmeans"/"mean" or "kmedoids"/"medoid"
    initial: optional k representatives to start from instead of the first k points
    returns: ClusteringResult
    """
    tag = resolve_algorithm(algorithm)
    update = UPDATE_RULES[tag]

    # working copy, the caller's sequence is never touched
    pts = [_as_point(p, i) for i, p in enumerate(points if points is not None else [])]
    _validate(pts, k, max_iterations)

    if initial is None:
        reps = initial_representatives(pts, k)
    else:
        reps = [_as_point(p, i) for i, p in enumerate(initial)]
        if len(reps) != k:
            raise InvalidClusterCount(f"expected {k} initial representatives, got {len(reps)}")

    assignments = [UNASSIGNED] * len(pts)
    result = ClusteringResult(assignments=assignments, representatives=reps, algorithm=tag, k=k)
    logger.info("%s: %d points, k=%d, max_iterations=%d", tag, len(pts), k, max_iterations)

    for iteration in range(max_iterations):
        snapshot = tuple(reps)

        changed = False
        for i, p in enumerate(pts):
            c = _nearest(p, reps)
            if assignments[i] != c:
                assignments[i] = c
                changed = True

        if not changed:
            result.log.append(IterationRecord(iteration, tag, snapshot, snapshot))
            result.status = Termination.CONVERGED
            break

        members = [[] for _ in range(k)]
        for i, c in enumerate(assignments):
            members[c].append(pts[i])
        for c in range(k):
            # empty clusters keep their representative
            if members[c]:
                reps[c] = update(members[c], reps[c])

        result.log.append(IterationRecord(iteration, tag, snapshot, tuple(reps)))
        logger.debug("%s iteration %d: %s -> %s", tag, iteration, snapshot, reps)
    else:
        result.status = Termination.BUDGET_EXHAUSTED

    logger.info("%s finished: %s after %d iterations", tag, result.status.value, result.iterations)
    return result


def kmeans(points, k, max_iter=DEFAULT_MAX_ITERATIONS):
    return run_clustering(points, k, "kmeans", max_iterations=max_iter)


def kmedoids(points, k, max_iter=DEFAULT_MAX_ITERATIONS):
    return run_clustering(points, k, "kmedoids", max_iterations=max_iter)
