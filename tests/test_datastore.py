"""
Tests for the DuckDB-backed DataStore.
"""
import pandas as pd
import pytest

from tests.conftest import BOM_KEY
from wlheat.services.capability import CapabilityProbe
from wlheat.services.datastore import DataStore
from wlheat.utils.predicates import All, Equals, NumericRange, StringSetMembership, safe_number


@pytest.fixture
def store(store_config, sales_csv):
    return DataStore(store_config)


class TestLoading:
    """CSV loading and preprocessing"""

    def test_loads_csv(self, store):
        df = store.get()
        assert len(df) == 3
        assert store.columns()[:3] == ["BranchName", "ProductGroupLevel1", "SaleDate"]
        assert store.compute_summary() == {"rows": 3, "cols": 6}

    def test_date_text_stays_text(self, store):
        assert list(store.get()["SaleDate"]) == ["1/1/2026", "1/2/2026", "1/5/2026"]

    def test_empty_store(self, store_config):
        store = DataStore(store_config)
        assert store.get().empty
        assert store.sample_properties("wl-src") == []
        assert store.summarize(All(), ("TotalSales",)) == {"rows": 0, "total": 0.0}

    def test_set_df_drops_duplicates(self, store_config):
        store = DataStore(store_config)
        store.set_df(pd.DataFrame({"BranchName": ["a", "a"], "TotalSales": ["1", "1"]}))
        assert len(store.get()) == 1
        assert store.get()["TotalSales"].iloc[0] == 1

    def test_generation(self, store):
        store.get()
        assert store.generation == 0
        store.reload()
        assert store.generation == 1
        assert len(store.get()) == 3
        assert store.generation == 1
        store.set_df(store.get())
        assert store.generation == 2


class TestSampleProperties:
    """Tests for sample_properties()"""

    def test_records(self, store):
        records = store.sample_properties("wl-src", limit=2)
        assert len(records) == 2
        assert records[0]["BranchName"] == "Bryan"
        assert records[0]["SaleDateKey"] == 20260101

    def test_foreign_source(self, store):
        assert store.sample_properties("other-src") == []

    def test_missing_values_are_left_out(self, store_config):
        store = DataStore(store_config)
        store.set_df(pd.DataFrame({"BranchName": ["Bryan"], "TotalSales": [None]}))
        assert store.sample_properties("wl-src") == [{"BranchName": "Bryan"}]

    def test_probe_on_store(self, store):
        probe = CapabilityProbe("SaleDateKey", (BOM_KEY,))
        capability = probe.get(store.sample_properties, "wl-src", store.generation)
        assert capability.has_numeric_date_key
        assert capability.resolved_fields == ("SaleDateKey",)

    def test_probe_on_text_only_store(self, store_config, sales_csv_no_key):
        store = DataStore(store_config)
        probe = CapabilityProbe("SaleDateKey", (BOM_KEY,))
        assert not probe.get(store.sample_properties, "wl-src").has_numeric_date_key


class TestSummarize:
    """Tests for summarize()"""

    def test_everything(self, store):
        assert store.summarize(All(), ("TotalSales",)) == {"rows": 3, "total": pytest.approx(170.5)}

    def test_equals(self, store):
        summary = store.summarize(All((Equals("BranchName", "Bryan"),)), ("TotalSales",))
        assert summary == {"rows": 2, "total": pytest.approx(150.5)}

    def test_membership(self, store):
        predicate = All((StringSetMembership("SaleDate", ("1/1/2026", "1/5/2026")),))
        assert store.summarize(predicate, ("TotalSales",)) == {"rows": 2, "total": pytest.approx(120.5)}

    def test_numeric_range(self, store):
        predicate = All((NumericRange("SaleDateKey", 20260102, 20260105, (BOM_KEY,)),))
        assert store.summarize(predicate, ("TicketCount",)) == {"rows": 2, "total": pytest.approx(3.0)}
        assert store.summarize(predicate, ("TotalSales",)) == {"rows": 2, "total": pytest.approx(70.0)}

    def test_missing_column_matches_nothing(self, store):
        predicate = All((Equals("Region", "South"),))
        assert store.summarize(predicate, ("TotalSales",)) == {"rows": 0, "total": 0.0}

    def test_missing_metric_column(self, store):
        assert store.summarize(All(), ("Nope",)) == {"rows": 3, "total": 0.0}


class TestNonFiniteValues:
    """inf and NaN metric values read as zero, like safe_number"""

    def test_summarize_ignores_infinite_values(self, store_config):
        store = DataStore(store_config)
        store.set_df(pd.DataFrame({"BranchName": ["a", "b", "c"], "TotalSales": ["5", "inf", "1e400"]}))
        summary = store.summarize(All(), ("TotalSales",))
        assert summary == {"rows": 3, "total": 5.0}

        records = store.sample_properties("wl-src")
        assert sum(safe_number(r, ("TotalSales",)) for r in records) == summary["total"]

    def test_range_on_infinite_key_agrees_with_matches(self, store_config):
        store = DataStore(store_config)
        store.set_df(pd.DataFrame({"BranchName": ["a", "b"], "SaleDateKey": ["inf", "20260102"]}))
        predicate = All((NumericRange("SaleDateKey", 20260101),))
        assert store.summarize(predicate, ("TotalSales",))["rows"] == 1


class TestSelect:
    """Tests for select()"""

    def test_matching_rows(self, store):
        df = store.select(All((Equals("BranchName", "Bryan"),)))
        assert list(df["ProductGroupLevel1"]) == ["Tires", "Service"]

    def test_empty_store(self, store_config):
        assert DataStore(store_config).select(All()).empty
