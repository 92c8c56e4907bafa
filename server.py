# server.py
# Minimal HTTP API around the clustering engine.
# Run: python server.py

import os
import io
import csv
import json
import math
import re
from wsgiref.simple_server import make_server
from urllib.parse import parse_qs

from sqlalchemy import select
from sqlalchemy.orm import Session

import config
from clustering import ClusteringError, run_clustering
from logger import get_logger
from ml import log_frame_from_rows, summarize
from models import ClusterRun, add_point, get_engine, get_point_set, load_points, record_run, replace_points

logger = get_logger("server")

ENGINE = None
RUN_LOG_PATH = re.compile(r"^/api/runs/(\d+)/log\.csv$")


def get_db():
    global ENGINE
    if ENGINE is None:
        ENGINE = get_engine(config.DATABASE_URL)
    return Session(ENGINE)


def respond_json(start_response, status, obj):
    payload = json.dumps(obj, default=str).encode("utf-8")
    headers = [("Content-Type", "application/json"), ("Content-Length", str(len(payload)))]
    start_response(status, headers)
    return [payload]


def respond_csv(start_response, filename, text):
    data = text.encode("utf-8")
    start_response(
        "200 OK",
        [
            ("Content-Type", "text/csv"),
            ("Content-Disposition", f"attachment; filename={filename}"),
            ("Content-Length", str(len(data))),
        ],
    )
    return [data]


def parse_post(environ):
    # parse JSON body or form-encoded body
    try:
        size = int(environ.get("CONTENT_LENGTH", 0) or 0)
    except ValueError:
        size = 0
    body = environ["wsgi.input"].read(size) if size > 0 else b""
    if not body:
        return {}
    ct = environ.get("CONTENT_TYPE", "")
    if "application/json" in ct:
        try:
            data = json.loads(body.decode("utf-8"))
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
    # fallback parse form
    try:
        return {k: v[0] for k, v in parse_qs(body.decode("utf-8")).items()}
    except UnicodeDecodeError:
        return {}


def query_param(environ, name, default=None):
    qs = parse_qs(environ.get("QUERY_STRING", ""))
    return qs.get(name, [default])[0]


def parse_points_csv(csv_text):
    """Read x,y rows (header optional). returns: (points, errors)"""
    points = []
    errors = []
    for idx, row in enumerate(csv.reader(io.StringIO(csv_text)), start=1):
        if not row or all(not c.strip() for c in row):
            continue
        if idx == 1 and row[0].strip().lower() == "x":
            continue
        try:
            if len(row) < 2:
                raise ValueError("expected x,y")
            points.append((as_coord(row[0]), as_coord(row[1])))
        except ValueError as e:
            errors.append({"row": idx, "error": str(e)})
    return points, errors


def points_csv(points):
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["x", "y"])
    for x, y in points:
        writer.writerow([x, y])
    return output.getvalue()


def as_coord(value):
    v = float(value)
    if not math.isfinite(v):
        raise ValueError(f"non-finite coordinate: {value}")
    return v


def as_int(value):
    # 2.0 is fine, 2.5 and true are not
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"not an integer: {value}")
    return int(value)


def run_summary(run):
    return {
        "id": run.id,
        "point_set": run.point_set.name if run.point_set else None,
        "algorithm": run.algorithm,
        "k": run.k,
        "max_iterations": run.max_iterations,
        "status": run.status,
        "iterations": run.iterations,
        "created_at": run.created_at,
    }


def app(environ, start_response):
    path = environ.get("PATH_INFO", "/")
    method = environ.get("REQUEST_METHOD", "GET").upper()

    try:
        return dispatch(environ, start_response, path, method)
    except ClusteringError as e:
        return respond_json(start_response, "400 Bad Request", {"error": e.kind, "details": str(e)})
    except Exception:
        logger.exception("%s %s failed", method, path)
        return respond_json(start_response, "500 Internal Server Error", {"error": "internal_error"})


def dispatch(environ, start_response, path, method):
    # ---------------------------------------------------------------------
    # POINTS
    # ---------------------------------------------------------------------

    # API: GET points of a set
    if path == "/api/points" and method == "GET":
        name = query_param(environ, "set", config.DEFAULT_POINT_SET)
        with get_db() as session:
            points = load_points(session, name)
        return respond_json(start_response, "200 OK", {"set": name, "points": [list(p) for p in points]})

    # API: append a single point
    if path == "/api/points" and method == "POST":
        body = parse_post(environ)
        name = body.get("set") or config.DEFAULT_POINT_SET
        try:
            x = as_coord(body["x"])
            y = as_coord(body["y"])
        except (KeyError, TypeError, ValueError):
            return respond_json(start_response, "400 Bad Request", {"error": "numeric x and y required"})
        with get_db() as session:
            position = add_point(session, name, x, y)
            session.commit()
        return respond_json(start_response, "200 OK", {"set": name, "position": position, "point": [x, y]})

    # API: CSV upload (POST) - expects JSON { "csv": "<csv text>" }, replaces the set
    if path == "/api/points/upload" and method == "POST":
        body = parse_post(environ)
        name = body.get("set") or config.DEFAULT_POINT_SET
        csv_text = body.get("csv") or ""
        if not csv_text:
            return respond_json(start_response, "400 Bad Request", {"error": "CSV text required"})

        points, errors = parse_points_csv(csv_text)
        if not points:
            return respond_json(start_response, "400 Bad Request", {"error": "no valid points", "errors": errors})
        with get_db() as session:
            inserted = replace_points(session, name, points)
            session.commit()
        return respond_json(start_response, "200 OK", {"set": name, "inserted": inserted, "errors": errors})

    # API: export points.csv
    if path == "/api/export/points.csv" and method == "GET":
        name = query_param(environ, "set", config.DEFAULT_POINT_SET)
        with get_db() as session:
            points = load_points(session, name)
        return respond_csv(start_response, f"{name}.csv", points_csv(points))

    # ---------------------------------------------------------------------
    # CLUSTERING
    # ---------------------------------------------------------------------

    # API: run KMeans / KMedoids on a stored set
    if path == "/api/cluster/run" and method == "POST":
        body = parse_post(environ)
        name = body.get("set") or config.DEFAULT_POINT_SET
        algorithm = body.get("algorithm") or "kmeans"
        try:
            k = as_int(body.get("k"))
            raw_budget = body.get("max_iterations")
            max_iterations = config.DEFAULT_MAX_ITERATIONS if raw_budget in (None, "") else as_int(raw_budget)
        except (TypeError, ValueError):
            return respond_json(
                start_response, "400 Bad Request", {"error": "invalid_request", "details": "integer k and max_iterations required"}
            )

        with get_db() as session:
            point_set = get_point_set(session, name)
            if point_set is None:
                return respond_json(start_response, "404 Not Found", {"error": "point_set_not_found", "set": name})
            points = [(p.x, p.y) for p in point_set.points]
            result = run_clustering(points, k, algorithm, max_iterations=max_iterations)
            run = record_run(session, point_set, result, max_iterations)
            session.commit()
            run_id = run.id

        payload = result.to_dict()
        payload["run_id"] = run_id
        payload["summary"] = summarize(result, points)
        return respond_json(start_response, "200 OK", payload)

    # API: run history
    if path == "/api/runs" and method == "GET":
        with get_db() as session:
            runs = session.execute(select(ClusterRun).order_by(ClusterRun.id.desc())).scalars().all()
            rows = [run_summary(r) for r in runs]
        return respond_json(start_response, "200 OK", rows)

    # API: export a run's iteration log
    m = RUN_LOG_PATH.match(path)
    if m and method == "GET":
        run_id = int(m.group(1))
        with get_db() as session:
            run = session.get(ClusterRun, run_id)
            if run is None:
                return respond_json(start_response, "404 Not Found", {"error": "run_not_found"})
            rows = [(e.iteration, run.algorithm, e.cluster, e.stage, e.x, e.y) for e in run.log]
        df = log_frame_from_rows(rows)
        return respond_csv(start_response, f"run_{run_id}_log.csv", df.to_csv(index=False))

    return respond_json(start_response, "404 Not Found", {"error": "not_found", "path": path})


if __name__ == "__main__":
    # ensure DB exists (calls db_init.seed if missing)
    try:
        import db_init
        db_path = db_init.sqlite_path(config.DATABASE_URL)
        if db_path is None or not os.path.exists(db_path):
            print("DB not found, running db_init.py to create it.")
            db_init.seed(config.DATABASE_URL)
    except Exception as e:
        print("Failed to run db_init.py:", e)

    port = config.PORT
    print(f"Starting server on http://{config.HOST}:{port}")
    httpd = make_server(config.HOST, port, app)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        print("Server stopped.")
