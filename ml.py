import numpy as np
import pandas as pd
from sklearn.cluster import KMeans

from clustering import UNASSIGNED

LOG_COLUMNS = ['iteration', 'algorithm', 'representative', 'stage', 'x', 'y']


def points_frame(points, assignments=None):
    df = pd.DataFrame([(float(p[0]), float(p[1])) for p in points], columns=['x', 'y'])
    if assignments is None:
        df['cluster'] = UNASSIGNED
    else:
        df['cluster'] = list(assignments)
    df['cluster'] = df['cluster'].astype(int)
    return df


def log_frame_from_rows(rows):
    return pd.DataFrame(rows, columns=LOG_COLUMNS)


def log_frame(result):
    """One row per (iteration, representative, stage) of a run's trace."""
    rows = []
    for rec in result.log:
        for stage, reps in (('initial', rec.initial), ('updated', rec.updated)):
            for idx, (x, y) in enumerate(reps):
                rows.append((rec.iteration, rec.algorithm, idx, stage, x, y))
    return log_frame_from_rows(rows)


def cluster_sizes(result):
    counts = pd.Series(result.assignments, dtype=int).value_counts().to_dict()
    return {c: int(counts.get(c, 0)) for c in range(result.k)}


def total_squared_distance(points, assignments, representatives):
    X = np.asarray(points, dtype=float)
    if X.size == 0:
        return 0.0
    C = np.asarray(representatives, dtype=float)
    labels = np.asarray(assignments, dtype=int)
    diffs = X - C[labels]
    return float(np.sum(diffs ** 2))


def sklearn_reference(points, k, max_iter=100):
    """
    Lloyd's KMeans from scikit-learn seeded with the same first-k points.
    returns: (labels, centroids)
    """
    X = np.asarray(points, dtype=float)
    km = KMeans(n_clusters=k, init=X[:k].copy(), n_init=1, max_iter=max_iter, algorithm='lloyd')
    labels = km.fit_predict(X)
    return labels.tolist(), [tuple(c) for c in km.cluster_centers_.tolist()]


def summarize(result, points):
    return {
        'algorithm': result.algorithm,
        'k': result.k,
        'status': result.status.value,
        'iterations': result.iterations,
        'sizes': {str(c): n for c, n in cluster_sizes(result).items()},
        'inertia': round(total_squared_distance(points, result.assignments, result.representatives), 6),
    }
