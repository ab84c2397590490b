"""Tests for scripts/apply_edits.py."""
from __future__ import annotations

import importlib.util
from pathlib import Path

import orjson
import pytest

from clinidoc.config import ModelConfig

DOC = "NOME: JOHN SMITH\nProntuário Médico\nline one\nRelatório Médico\nline three\n"


def _load_script_module() -> object:
    root = Path(__file__).resolve().parents[1]
    script_path = root / "scripts" / "apply_edits.py"
    spec = importlib.util.spec_from_file_location("apply_edits", script_path)
    assert spec is not None
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


def _request(text: str | None = "novo") -> dict:
    return {
        "target_patients": ["Nome: JOHN SMITH"],
        "edits": [{
            "from_label": "Prontuário Médico",
            "to_label": "Prontuário Médico",
            "generated_text": text,
        }],
    }


def test_merge_document_uses_priority() -> None:
    mod = _load_script_module()
    requests = mod.requests_from_payload(_request())
    report = mod.merge_document(DOC, requests, ModelConfig())
    assert report.outcomes == ("replaced",)
    assert report.text == (
        "Nome: JOHN SMITH\nProntuário Médico\nnovo\nRelatório Médico\nline three"
    )


def test_load_requests_jsonl(tmp_path: Path) -> None:
    mod = _load_script_module()
    path = tmp_path / "edits.jsonl"
    path.write_bytes(orjson.dumps(_request()) + b"\n" + orjson.dumps(_request("b")) + b"\n")
    requests = mod.load_requests(path)
    assert [r.edits[0].generated_text for r in requests] == ["novo", "b"]


def test_main(tmp_path: Path, capsys) -> None:
    mod = _load_script_module()
    doc = tmp_path / "notes.txt"
    doc.write_text(DOC, encoding="utf-8")
    reqs = tmp_path / "edits.json"
    reqs.write_bytes(orjson.dumps(_request()))
    out = tmp_path / "merged.txt"

    mod.main(["--document", str(doc), "--requests", str(reqs), "--output", str(out)])

    payload = orjson.loads(capsys.readouterr().out)
    assert payload["completed"] == 1
    assert payload["failures"] == []
    assert out.read_text(encoding="utf-8") == payload["text"] + "\n"


def test_main_all_failed_exits(tmp_path: Path) -> None:
    mod = _load_script_module()
    doc = tmp_path / "notes.txt"
    doc.write_text(DOC, encoding="utf-8")
    reqs = tmp_path / "edits.json"
    reqs.write_bytes(orjson.dumps(_request(None)))
    with pytest.raises(SystemExit) as exc:
        mod.main(["--document", str(doc), "--requests", str(reqs)])
    assert exc.value.code == 1


def test_main_invalid_requests_exits(tmp_path: Path) -> None:
    mod = _load_script_module()
    doc = tmp_path / "notes.txt"
    doc.write_text(DOC, encoding="utf-8")
    reqs = tmp_path / "edits.json"
    reqs.write_bytes(b'{"edits": [{"from_label": "X"}]}')
    with pytest.raises(SystemExit) as exc:
        mod.main(["--document", str(doc), "--requests", str(reqs)])
    assert exc.value.code == 1


def test_main_non_string_generated_text_exits(tmp_path: Path) -> None:
    mod = _load_script_module()
    doc = tmp_path / "notes.txt"
    doc.write_text(DOC, encoding="utf-8")
    reqs = tmp_path / "edits.json"
    payload = _request()
    payload["edits"][0]["generated_text"] = 123
    reqs.write_bytes(orjson.dumps(payload))
    with pytest.raises(SystemExit) as exc:
        mod.main(["--document", str(doc), "--requests", str(reqs)])
    assert exc.value.code == 1
