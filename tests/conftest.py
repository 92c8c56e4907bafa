import io
import json
from wsgiref.util import setup_testing_defaults

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import db_init
import server

TWO_BLOBS = [(0, 0), (1, 0), (0, 1), (10, 10), (11, 10), (10, 11)]


@pytest.fixture
def two_blobs():
    return list(TWO_BLOBS)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool, future=True
    )
    db_init.seed(engine=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def call(engine, monkeypatch):
    """Call the WSGI app directly. returns: (status, headers, body bytes)"""
    monkeypatch.setattr(server, "ENGINE", engine)

    def _call(method, path, body=None, query=""):
        environ = {}
        setup_testing_defaults(environ)
        payload = json.dumps(body).encode("utf-8") if body is not None else b""
        environ.update(
            {
                "REQUEST_METHOD": method,
                "PATH_INFO": path,
                "QUERY_STRING": query,
                "CONTENT_TYPE": "application/json",
                "CONTENT_LENGTH": str(len(payload)),
                "wsgi.input": io.BytesIO(payload),
            }
        )
        captured = {}

        def start_response(status, headers):
            captured["status"] = status
            captured["headers"] = dict(headers)

        chunks = server.app(environ, start_response)
        return captured["status"], captured["headers"], b"".join(chunks)

    return _call
