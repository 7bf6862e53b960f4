import importlib
import json

import pytest

from helpers import patch, pin, project

from patchflow.compile_project import main


@pytest.fixture
def project_file(tmp_path):
    doc = project(
        {"@/blink-led": patch({42: "core/add100", 43: "core/add100"}, [(42, "valueOut", "valueIn", 43)])},
        {
            "core/add100": {
                "pure": True,
                "pins": {"valueIn": pin("input"), "valueOut": pin("output")},
                "impl": {"js": "// {{ PROJECT_NAME }} by {{ USERNAME }}", "cpp": "struct Node {};"},
            },
        },
    )
    path = tmp_path / "blink.json"
    path.write_text(json.dumps(doc))
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ("PATCHFLOW_BACKENDS", "PATCHFLOW_LIVENESS", "PATCHFLOW_STRICT"):
        monkeypatch.delenv(key, raising=False)
    # keep a stray .env in the working directory out of the way
    monkeypatch.chdir(tmp_path)


class TestCompileProjectCli:

    def test_print(self, project_file, capsys):
        code = main([str(project_file), "--entry", "@/blink-led", "--print", "--global", "USERNAME=alice"])
        out = capsys.readouterr().out

        assert code == 0
        assert "// blink by alice" in out
        assert "const topology = [42, 43];" in out

    def test_writes_files(self, project_file, tmp_path):
        out_dir = tmp_path / "build"
        code = main([
            str(project_file), "--entry", "@/blink-led", "--backend", "cpp",
            "--out", str(out_dir), "--unit-json",
        ])

        assert code == 0
        source = (out_dir / "blink_led.cpp").read_text()
        assert "void runTransaction() {" in source
        unit = json.loads((out_dir / "blink_led.unit.json").read_text())
        assert unit["topology"] == [42, 43]
        assert unit["globals"]["PROJECT_NAME"] == "blink"

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.json"), "--entry", "@/main"]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_transform_error(self, project_file, capsys):
        assert main([str(project_file), "--entry", "@/main", "--print"]) == 1
        assert "PATCH_NOT_FOUND" in capsys.readouterr().err

    def test_bad_global(self, project_file):
        with pytest.raises(SystemExit):
            main([str(project_file), "--entry", "@/blink-led", "--global", "oops"])

    def test_not_utf8(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_bytes(b'{"patches": {"\xff": {}}}')

        assert main([str(path), "--entry", "@/main", "--print"]) == 1
        assert "INVALID_PROJECT_FORMAT" in capsys.readouterr().err

    def test_emitter_fault_is_reported(self, project_file, monkeypatch, capsys):
        compiler = importlib.import_module("patchflow.compiler")

        def boom(unit, backend="js"):
            raise KeyError("template")

        monkeypatch.setattr(compiler, "emit", boom)

        assert main([str(project_file), "--entry", "@/blink-led", "--print"]) == 1
        assert "UNEXPECTED_ERROR" in capsys.readouterr().err
