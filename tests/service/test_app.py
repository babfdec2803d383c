"""Tests for the FastAPI service mode."""

from __future__ import annotations

from typing import Optional

import pytest

try:
    from fastapi.testclient import TestClient
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    pytest.skip("fastapi not installed", allow_module_level=True)

from solidgen.dart import GrammarUnavailableError
from solidgen.service import create_app
from solidgen.transform.orchestrator import TransformOutcome, Transformer
from tests._fixtures.project_builder import ProjectBuilder


class _StubTransformer(Transformer):
    def __init__(self) -> None:
        super().__init__()
        self.calls: list[Optional[str]] = []

    def transform(self, text: str, path: Optional[str] = None) -> TransformOutcome:
        self.calls.append(path)
        return TransformOutcome(source=text.upper(), changed=True)


def test_health_endpoint() -> None:
    client = TestClient(create_app())

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_transform_endpoint_runs_the_pipeline() -> None:
    client = TestClient(create_app())

    response = client.post(
        "/transform",
        json={"source": "class S {\n  @SolidState()\n  int a = 0;\n}\n", "path": "s.dart"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["changed"] is True
    assert "final a = Signal<int>(0, name: 'a');" in payload["source"]
    assert payload["members"][0]["construct"] == "Signal"


def test_transform_endpoint_uses_factory() -> None:
    stub = _StubTransformer()
    client = TestClient(create_app(lambda: stub))

    response = client.post("/transform", json={"source": "abc", "path": "x.dart"})

    assert response.json()["source"] == "ABC"
    assert stub.calls == ["x.dart"]


def test_syntax_errors_map_to_bad_request() -> None:
    client = TestClient(create_app())

    response = client.post("/transform", json={"source": "class Broken {\n"})

    assert response.status_code == 400
    assert "line" in response.json()["detail"]


class _GrammarlessTransformer(Transformer):
    def transform(self, text: str, path: Optional[str] = None) -> TransformOutcome:
        raise GrammarUnavailableError("tree-sitter Dart grammar is not installed")


def test_missing_grammar_maps_to_service_unavailable() -> None:
    client = TestClient(create_app(_GrammarlessTransformer))

    response = client.post("/transform", json={"source": "class A {}\n"})

    assert response.status_code == 503
    assert "grammar" in response.json()["detail"]


def test_build_endpoint(project: ProjectBuilder) -> None:
    project.write({"source/a.dart": "class A {}\n"})
    client = TestClient(create_app())

    response = client.post("/build", json={"root": str(project.path())})

    assert response.status_code == 200
    payload = response.json()
    assert payload["summary"] == "0 transformed, 1 copied, 0 skipped, 0 failed"
    assert payload["files"][0]["path"] == "a.dart"
    assert project.read_output("a.dart") == "class A {}\n"


def test_build_endpoint_missing_root(tmp_path) -> None:
    client = TestClient(create_app())

    response = client.post("/build", json={"root": str(tmp_path / "nope")})

    assert response.status_code == 404
