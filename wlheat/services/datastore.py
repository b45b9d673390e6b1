"""Local copy of the feature properties behind the map tiles."""

from __future__ import annotations
import glob
import logging
import math
import os
import threading
from io import BytesIO
from typing import Any, Dict, List, Mapping, Optional, Sequence
import duckdb
import pandas as pd
import requests

from wlheat.utils.predicates import All, safe_number_sql

logger = logging.getLogger("wlheat")


class DataStore:
    """Own data loading, preprocessing and the DuckDB copy of the tile properties.

    Storage backend: DuckDB (.duckdb file)
    - Source data: CSV exports matched by Config.CSV_GLOB, or a parquet
      export at Config.BUCKET_URL
    - Materialized table: prod.features

    ``generation`` changes whenever the data is reloaded or replaced, so
    anything derived from the data (the capability probe) knows to refresh.
    """

    def __init__(self, config: Mapping[str, Any]):
        self.config = config
        self._df: Optional[pd.DataFrame] = None
        self._con: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self.generation = 0

    # ---------- DuckDB helpers ----------

    def _connect(self) -> duckdb.DuckDBPyConnection:
        if self._con is None:
            db_path = str(self.config.get("DUCKDB_PATH"))
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
            self._con = duckdb.connect(db_path)
        return self._con

    def _table_exists(self) -> bool:
        con = self._connect()
        try:
            return bool(
                con.execute(
                    "SELECT COUNT(*) FROM information_schema.tables "
                    "WHERE table_schema='prod' AND table_name='features';"
                ).fetchone()[0]
            )
        except duckdb.Error:
            return False

    def run_query(self, sql: str, params=None) -> pd.DataFrame:
        """Execute SQL on DuckDB and return as pandas DataFrame."""
        with self._lock:
            con = self._connect()
            return con.execute(sql, params or []).df()

    def rebuild_from_csv(self) -> bool:
        """Full rebuild of prod.features from CSVs matched by CSV_GLOB."""
        csv_glob = self.config.get("CSV_GLOB", "data/*.csv")
        files = sorted(glob.glob(csv_glob))
        if not files:
            logger.warning("No CSV files found for glob %s", csv_glob)
            return False

        logger.info("Building prod.features from %d CSV file(s): %s", len(files), csv_glob)
        # raw date text must stay text; DuckDB/pandas would otherwise parse it
        dtype = {self.config.get("DATE_TEXT_FIELD", "SaleDate"): str}
        frames = [pd.read_csv(path, dtype=dtype) for path in files]
        self.set_df(pd.concat(frames, ignore_index=True))
        return True

    # ---------- loading ----------

    def _preprocess(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.drop_duplicates().reset_index(drop=True)

        date_text = self.config.get("DATE_TEXT_FIELD")
        if date_text and date_text in df.columns:
            df[date_text] = df[date_text].astype("string").str.strip()

        numeric = list(self.config.get("METRIC_FIELDS", {}).values())
        numeric.append(self.config.get("DATE_KEY_FIELD"))
        numeric.extend(self.config.get("DATE_KEY_ALT_FIELDS", ()))
        for numcol in numeric:
            if numcol and numcol in df.columns:
                df[numcol] = pd.to_numeric(df[numcol], errors="coerce")

        return df

    def load(self) -> pd.DataFrame:
        with self._lock:
            if self._df is not None:
                return self._df

            if self._table_exists():
                try:
                    self._df = self._connect().execute("SELECT * FROM prod.features;").df()
                    logger.info("Loaded data from local DuckDB prod.features.")
                    return self._df
                except duckdb.Error as e:
                    logger.warning("DuckDB table load failed: %s", e)

            if self.rebuild_from_csv():
                return self._df

            url = self.config.get("BUCKET_URL")
            headers = {"apikey": self.config.get("BUCKET_KEY")}
            if url:
                try:
                    resp = requests.get(url, headers=headers, timeout=60)
                    resp.raise_for_status()
                    self.set_df(pd.read_parquet(BytesIO(resp.content)))
                    logger.info("Loaded remote parquet from BUCKET_URL.")
                    return self._df
                except (requests.HTTPError, requests.ConnectionError, requests.Timeout) as e:
                    logger.error("Failed to fetch remote file from BUCKET_URL: %s", e)

            logger.error("No data source succeeded; feature store is empty.")
            return pd.DataFrame()

    def set_df(self, df: pd.DataFrame) -> None:
        with self._lock:
            replaced = self._df is not None
            self._df = self._preprocess(df)

            con = self._connect()
            con.execute("CREATE SCHEMA IF NOT EXISTS prod;")
            con.execute("DROP TABLE IF EXISTS prod.features;")
            con.register("tmp_df", self._df)
            con.execute("CREATE TABLE prod.features AS SELECT * FROM tmp_df;")
            con.unregister("tmp_df")
            con.execute("ANALYZE prod.features;")
            if replaced:
                self.generation += 1
            logger.info(
                "Persisted %d feature row(s) into DuckDB prod.features (generation %d).",
                len(self._df),
                self.generation,
            )

    def get(self, copy: bool = True) -> pd.DataFrame:
        df = self.load()
        return df.copy(deep=False) if copy else df

    def reload(self) -> None:
        with self._lock:
            self._df = None
            if self._con is not None:
                self._con.execute("DROP TABLE IF EXISTS prod.features;")
            self.generation += 1
        logger.info("DataStore cache cleared")

    def columns(self) -> List[str]:
        return [str(c) for c in self.get(copy=False).columns]

    # ---------- filter support ----------

    def sample_properties(self, source_id: str, limit: int = 25) -> List[Dict[str, Any]]:
        """Property records for the capability probe; empty until data is loaded.

        Missing values are left out of the record, like null properties in
        vector tiles.
        """
        if source_id != self.config.get("SOURCE_ID", source_id):
            return []
        df = self.get(copy=False)
        if df.empty:
            return []
        records = df.head(max(int(limit), 0)).to_dict(orient="records")
        return [
            {
                str(k): v
                for k, v in record.items()
                if v is not None and v is not pd.NA and not (isinstance(v, float) and math.isnan(v))
            }
            for record in records
        ]

    def select(self, predicate: All) -> pd.DataFrame:
        """Feature rows matching ``predicate``."""
        columns = self.columns()
        if not columns:
            return pd.DataFrame()
        clause, params = predicate.to_sql_where(available_columns=columns)
        return self.run_query(f"SELECT * FROM prod.features WHERE {clause};", params)

    def summarize(self, predicate: All, metric_fields: Sequence[str]) -> Dict[str, float]:
        """Row count and metric total of the features matching ``predicate``."""
        columns = self.columns()
        if not columns:
            return {"rows": 0, "total": 0.0}
        clause, params = predicate.to_sql_where(available_columns=columns)
        value = safe_number_sql(metric_fields, columns)
        df = self.run_query(
            f"SELECT COUNT(*) AS n, COALESCE(SUM({value}), 0) AS total "
            f"FROM prod.features WHERE {clause};",
            params,
        )
        return {"rows": int(df.iloc[0]["n"]), "total": float(df.iloc[0]["total"])}

    def compute_summary(self) -> Dict[str, int]:
        df = self.get(copy=False)
        return {"rows": int(len(df)), "cols": int(len(df.columns))}


__all__ = ["DataStore"]
