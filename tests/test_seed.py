from sqlalchemy.orm import Session

from clustering import kmeans, kmedoids
from ml import cluster_sizes, sklearn_reference
from models import load_points, replace_points
from scripts.seed import CENTRES, blob_points


def test_blob_points_are_reproducible():
    assert blob_points() == blob_points()
    assert len(blob_points()) == 15 * len(CENTRES)
    assert blob_points(seed=1) != blob_points(seed=2)


def test_blobs_separate_into_their_centres():
    points = blob_points()
    result = kmeans(points, 3)

    assert result.converged
    assert cluster_sizes(result) == {0: 15, 1: 15, 2: 15}
    # points are interleaved centre by centre, so the seeds already sit one per blob
    assert result.assignments == [0, 1, 2] * 15

    labels, _ = sklearn_reference(points, 3)
    assert labels == result.assignments

    medoids = kmedoids(points, 3)
    assert medoids.assignments == result.assignments


def test_blobs_round_trip_through_the_store(engine):
    with Session(engine) as session:
        replace_points(session, "blobs", blob_points())
        session.commit()
        assert load_points(session, "blobs") == blob_points()
