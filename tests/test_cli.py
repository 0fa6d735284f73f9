import json

from registration_dedupe.cli import main


def test_run_test_writes_pii_free_summary(tmp_path, capsys) -> None:
    main(["run-test", "--size", "80", "--duplicate-rate", "0.25", "--output-dir", str(tmp_path)])

    summary = json.loads((tmp_path / "summary.json").read_text(encoding="utf-8"))
    out = capsys.readouterr().out

    assert "precision=" in out
    assert summary["query_count"] > 0
    assert summary["false_positives"] == 0
    assert summary["recall"] == 1.0
    assert summary["stored_count"] == summary["embedded_count"]
    assert set(summary) >= {"true_positives", "false_negatives", "avg_duplicate_score"}


def test_detect_prints_result_and_confirmation(tmp_path, capsys, honda_nested, honda_flat) -> None:
    record_path = tmp_path / "record.json"
    store_path = tmp_path / "store.json"
    record_path.write_text(json.dumps(honda_flat), encoding="utf-8")
    store_path.write_text(json.dumps([{"record_id": "reg-001", "record": honda_nested}]), encoding="utf-8")

    main(["detect", "--record", str(record_path), "--store", str(store_path)])

    out = capsys.readouterr().out
    assert '"is_duplicate": true' in out
    assert '"existing_record_id": "reg-001"' in out
    assert 'Please confirm by saying "yes" or "confirm".' in out
    assert "Jane" not in out and "XYZ" not in out


def test_detect_without_match(tmp_path, capsys, ford_flat, honda_nested) -> None:
    record_path = tmp_path / "record.json"
    store_path = tmp_path / "store.json"
    record_path.write_text(json.dumps(ford_flat), encoding="utf-8")
    store_path.write_text(json.dumps([{"record_id": "reg-001", "record": honda_nested}]), encoding="utf-8")

    main(["detect", "--record", str(record_path), "--store", str(store_path), "--similarity-threshold", "0.9"])

    out = capsys.readouterr().out
    assert '"is_duplicate": false' in out
    assert "Please confirm" not in out
