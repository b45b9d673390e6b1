"""
Pytest configuration and fixtures for the wlheat tests.
"""
import sys
from pathlib import Path

import pytest

# Project root holds the helper scripts (prepare_export.py)
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from wlheat.services.capability import SchemaCapability  # noqa: E402
from wlheat.services.compiler import ExpressionCompiler, FieldMapping  # noqa: E402

BOM_KEY = "\ufeffSaleDateKey"

SALES_CSV = """BranchName,ProductGroupLevel1,SaleDate,SaleDateKey,TotalSales,TicketCount
Bryan,Tires,1/1/2026,20260101,100.5,3
Bryan,Service,1/2/2026,20260102,50,1
Austin,Tires,1/5/2026,20260105,20,2
"""

SALES_CSV_NO_KEY = """BranchName,ProductGroupLevel1,SaleDate,TotalSales,TicketCount
Bryan,Tires,1/1/2026,100.5,3
Bryan,Service,1/2/2026,50,1
Austin,Tires,1/5/2026,20,2
"""


@pytest.fixture
def fields():
    return FieldMapping()


@pytest.fixture
def compiler(fields):
    return ExpressionCompiler(fields)


@pytest.fixture
def with_key():
    """Capability of a source carrying the numeric date key."""
    return SchemaCapability(True, ("SaleDateKey",), sampled=True)


@pytest.fixture
def without_key():
    """Capability of a source with only the raw date text."""
    return SchemaCapability(False, (), sampled=True)


@pytest.fixture
def store_config(tmp_path):
    """Configuration mapping pointing the feature store at ``tmp_path``."""
    return {
        "DUCKDB_PATH": str(tmp_path / "db" / "warehouse.duckdb"),
        "CSV_GLOB": str(tmp_path / "*.csv"),
        "SOURCE_ID": "wl-src",
        "DATE_TEXT_FIELD": "SaleDate",
        "DATE_KEY_FIELD": "SaleDateKey",
        "DATE_KEY_ALT_FIELDS": (BOM_KEY,),
        "METRIC_FIELDS": {"sales": "TotalSales", "tickets": "TicketCount"},
    }


@pytest.fixture
def sales_csv(tmp_path):
    path = tmp_path / "sales.csv"
    path.write_text(SALES_CSV, encoding="utf-8")
    return path


@pytest.fixture
def sales_csv_no_key(tmp_path):
    path = tmp_path / "sales.csv"
    path.write_text(SALES_CSV_NO_KEY, encoding="utf-8")
    return path
