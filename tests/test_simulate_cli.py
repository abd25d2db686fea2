import json

from config import SimulatorConfig
from tools.simulate import build_parser, run


def test_cli_records_every_message(tmp_path):
    src = tmp_path / "m.jsonl"
    src.write_text('{"id": "1", "ts": "old"}\n{"id": "2", "ts": "old"}\n', encoding="utf-8")
    out = tmp_path / "sent.jsonl"
    args = build_parser(SimulatorConfig()).parse_args(
        [str(src), "--record", str(out), "--frequency", "200", "--time-fields", "ts"]
    )
    assert run(args) == 0
    sent = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
    assert [m["id"] for m in sent] == ["1", "2"]
    assert all(m["ts"] != "old" for m in sent)


def test_cli_reports_missing_file(tmp_path):
    args = build_parser(SimulatorConfig()).parse_args(
        [str(tmp_path / "missing.xml"), "--record", str(tmp_path / "out.jsonl")]
    )
    assert run(args) == 1


def test_cli_rejects_bad_rate(tmp_path):
    args = build_parser(SimulatorConfig()).parse_args(
        [str(tmp_path / "m.xml"), "--record", str(tmp_path / "out.jsonl"), "--frequency", "0"]
    )
    assert run(args) == 1
