import dataclasses
import json
import os
from pathlib import Path
import subprocess
import sys

from factbuffer.facts import sample_facts


def _base_env(tmp_path: Path) -> dict[str, str]:
    env = os.environ.copy()
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        env.pop(name, None)
    env["DATABASE_URL"] = f"sqlite:///{tmp_path / 'cli.db'}"
    # Nothing listens on the discard port, so every attempt is refused.
    env["ENDPOINT_URL"] = "http://127.0.0.1:9/_api/facts/save_fact"
    env["RETRY_DELAY_SECONDS"] = "0"
    env["REQUEST_TIMEOUT_SECONDS"] = "2"
    return env


def _run_cli(tmp_path: Path, *args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "factbuffer.main", "run", *args],
        cwd=Path(__file__).resolve().parents[1],
        env=_base_env(tmp_path),
        check=False,
        capture_output=True,
        text=True,
    )


def test_cli_completes_even_when_every_delivery_fails(tmp_path: Path) -> None:
    proc = _run_cli(tmp_path, "--count", "3", "--batch-key", "cli-sample")

    assert proc.returncode == 0
    assert "batch_key=cli-sample" in proc.stdout
    assert "status=completed" in proc.stdout
    assert "total=3 delivered=0 failed=3" in proc.stdout


def test_cli_sends_facts_from_input_file(tmp_path: Path) -> None:
    input_file = tmp_path / "facts.jsonl"
    with input_file.open("w", encoding="utf-8") as outfile:
        for fact in sample_facts(2):
            outfile.write(json.dumps(dataclasses.asdict(fact)))
            outfile.write("\n")

    proc = _run_cli(tmp_path, "--input", str(input_file), "--batch-key", "cli-input", "--trigger-source", "scheduled")

    assert proc.returncode == 0
    assert "trigger=scheduled" in proc.stdout
    assert "total=2" in proc.stdout
