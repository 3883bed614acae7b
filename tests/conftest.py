# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
import pandas as pd
import pytest

from tabular_import.config.loader import load_config
from tabular_import.db.store import MemoryRecordStore
from tabular_import.models.config_models import PipelineConfig


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
        yield p


@pytest.fixture()
def default_config():
    """Packaged registry with no pause between batches (keeps tests fast)."""
    import dataclasses
    cfg = load_config()
    return dataclasses.replace(cfg, pipeline=dataclasses.replace(cfg.pipeline, pause_seconds=0.0))


@pytest.fixture()
def registry(default_config):
    return default_config.registry


@pytest.fixture()
def fast_pipeline() -> PipelineConfig:
    return PipelineConfig(pause_seconds=0.0)


@pytest.fixture()
def memory_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture()
def write_csv(temp_workdir: Path):
    """Write rows (lists of cells) as CSV text under data/."""
    def _write(name: str, rows: list[list[str]], sep: str = ",", encoding: str = "utf-8") -> Path:
        path = temp_workdir / "data" / name
        text = "\n".join(sep.join(cell for cell in row) for row in rows) + "\n"
        path.write_bytes(text.encode(encoding))
        return path
    return _write


@pytest.fixture()
def write_xlsx(temp_workdir: Path):
    """Write {sheet_name: rows} as a workbook under data/ (no pandas header row)."""
    def _write(name: str, sheets: dict[str, list[list[object]]]) -> Path:
        path = temp_workdir / "data" / name
        with pd.ExcelWriter(path, engine='openpyxl') as writer:
            for sheet_name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
        return path
    return _write


@pytest.fixture()
def staff_rows() -> list[list[str]]:
    """Two decorative rows, the header at index 2, five data rows (one blank)."""
    return [
        ["Staff list 2024"],
        ["exported from the old system"],
        ["Name", "Role", "Email"],
        ["Alice Souza", "Carpenter", "alice@example.com"],
        ["Bruno Lima", "Painter", "bruno@example.com"],
        ["", "", ""],
        ["Carla Dias", "Electrician", "carla@example.com"],
        ["Diego Reis", "Helper", "diego@example.com"],
    ]


@pytest.fixture()
def expense_rows() -> list[list[str]]:
    return [
        ["Date", "Description", "Amount", "Vendor"],
        ["15/03/2024", "Office rent", "\"$1,200.00\"", "Acme Corp"],
        ["2024-03-20", "Fuel", "(85.40)", "Shell"],
        ["20 Mar 2024", "Catering", "", "Wonka Foods"],
        ["01/04/2024", "Software licence", "49.99", "Initech"],
    ]


@pytest.fixture(autouse=True)
def _reset_logging_after_test():
    """CLI tests install a non-propagating handler; undo it so caplog works everywhere."""
    from tabular_import.logging.init import reset_logging
    yield
    reset_logging()
