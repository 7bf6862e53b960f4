import importlib

import pytest
from fastapi.testclient import TestClient

from helpers import patch, pin, project

from patchflow.server.main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def doc():
    return project(
        {"@/main": patch({1: "io/read", 2: "math/sink"}, [(1, "VAL", "in", 2)])},
        {
            "io/read": {"raises": True, "pins": {"VAL": pin("output")}, "impl": {"js": "// read"}},
            "math/sink": {"pins": {"in": pin("input")}},
        },
    )


class TestCompileRoutes:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_transform(self, client, doc):
        resp = client.post("/api/transform", json={"project": doc, "entry": "@/main", "liveness": "debug"})
        body = resp.json()

        assert resp.status_code == 200
        assert body["topology"] == [1, 2]
        assert body["nodes"]["1"]["outLinks"] == {"VAL": [{"nodeId": 2, "key": "in"}]}
        assert body["pinsAffectedByErrorRaisers"] == {"1": ["VAL"], "2": ["in"]}
        assert body["impl"] == {"io/read": "// read"}

    def test_transpile(self, client, doc):
        resp = client.post("/api/transpile", json={"project": doc, "entry": "@/main", "backend": "js"})
        body = resp.json()

        assert resp.status_code == 200
        assert "nodes[1] = " in body["source"]
        assert body["nodeIdsMap"] == {"1": "1", "2": "2"}
        assert body["pinsAffectedByErrorRaisers"] == {}

    def test_transform_error_is_422(self, client, doc):
        resp = client.post("/api/transform", json={"project": doc, "entry": "@/missing"})

        assert resp.status_code == 422
        assert resp.json()["detail"]["kind"] == "PATCH_NOT_FOUND"

    def test_unsupported_backend_is_422(self, client, doc):
        resp = client.post("/api/transpile", json={"project": doc, "entry": "@/main", "backend": "lua"})

        assert resp.status_code == 422
        assert resp.json()["detail"]["kind"] == "UNSUPPORTED_BACKEND"

    def test_emitter_fault_is_422(self, client, doc, monkeypatch):
        compiler = importlib.import_module("patchflow.compiler")

        def boom(unit, backend="js"):
            raise KeyError("template")

        monkeypatch.setattr(compiler, "emit", boom)
        resp = client.post("/api/transpile", json={"project": doc, "entry": "@/main"})

        assert resp.status_code == 422
        assert resp.json()["detail"]["kind"] == "UNEXPECTED_ERROR"
