import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from core.config import reset_config  # noqa: E402
from core.container import Container, reset_container  # noqa: E402
from core.exceptions import MalformedLedgerError  # noqa: E402
from core.history_ledger import LedgerRepository  # noqa: E402
from core.models.entry import CategoryScores, HistoryEntry, RunContext  # noqa: E402


class InMemoryLedger(LedgerRepository):
    """Ledger double keeping the serialized document in memory."""

    def __init__(self, document: Any = None) -> None:
        self.document = document
        self.writes = 0

    def load(self, strict: bool = False) -> List[HistoryEntry]:
        if self.document is None:
            return []
        if not isinstance(self.document, list):
            if strict:
                raise MalformedLedgerError("<memory>", "top-level value is not an array")
            return []
        return [HistoryEntry.from_dict(dict(item)) for item in self.document]

    def rewrite(self, entries: List[HistoryEntry]) -> None:
        self.document = json.loads(json.dumps([entry.to_dict() for entry in entries]))
        self.writes += 1


def lighthouse_report(fetch_time: Optional[str], scores: Optional[Dict[str, Optional[float]]] = None,
                      nested: bool = False) -> Dict[str, Any]:
    """Minimal Lighthouse JSON report."""
    scores = scores if scores is not None else {"performance": 0.9}
    categories = {
        category_id: {"id": category_id, "score": score}
        for category_id, score in scores.items()
    }
    if nested:
        return {"lighthouseResult": {"fetchTime": fetch_time, "categories": categories}}
    return {"fetchTime": fetch_time, "categories": categories}


@pytest.fixture
def reports_dir(tmp_path: Path) -> Path:
    path = tmp_path / "lighthouse-reports"
    path.mkdir()
    return path


@pytest.fixture
def write_report(reports_dir: Path):
    """Write a JSON artifact (and optionally its HTML pair) into reports_dir."""
    def _write(base_name: str, fetch_time: Optional[str], scores: Optional[Dict[str, Optional[float]]] = None,
               html: bool = True, suffix: str = ".report", nested: bool = False) -> Path:
        json_path = reports_dir / f"{base_name}{suffix}.json"
        json_path.write_text(json.dumps(lighthouse_report(fetch_time, scores, nested)), encoding="utf-8")
        if html:
            (reports_dir / f"{base_name}{suffix}.html").write_text("<html>report</html>", encoding="utf-8")
        return json_path

    return _write


@pytest.fixture
def make_entry():
    def _make(page: str = "example com", preset: str = "mobile", fetch_time: Optional[str] = "2024-01-01T00:00:00.000Z",
              performance: Optional[float] = 0.9, run_number: Optional[int] = None, run_id: Optional[str] = None,
              report_url: Optional[str] = None, **scores) -> HistoryEntry:
        return HistoryEntry(
            page=page,
            preset=preset,
            fetch_time=fetch_time,
            metrics=CategoryScores(performance=performance, **scores),
            run_id=run_id,
            run_number=run_number,
            report_url=report_url,
        )

    return _make


@pytest.fixture
def run_context() -> RunContext:
    return RunContext(run_id="1001", run_number=7, run_url="https://ci.example.com/runs/1001")


@pytest.fixture
def memory_ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch):
    """Point configuration at tmp_path and clear cached config/container."""
    for key in ("GITHUB_RUN_ID", "GITHUB_RUN_NUMBER", "GITHUB_RUN_URL", "EXISTING_SITE_DIR",
                "LIGHTHOUSE_REPORTS_DIR", "LIGHTHOUSE_HISTORY_PATH", "LIGHTHOUSE_SITE_DIR",
                "REPORT_URL_PREFIX", "DASHBOARD_THRESHOLD", "COLLECT_WORKERS", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LIGHTHOUSE_ROOT_DIR", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    reset_config()
    reset_container()
    yield tmp_path
    reset_config()
    reset_container()


@pytest.fixture
def fresh_container() -> Container:
    return Container()
