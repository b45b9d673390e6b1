import os
import sys
import pandas as pd

from wlheat.config import Config
from wlheat.utils.date_keys import encode


def add_date_key(
    df: pd.DataFrame,
    date_text_field: str = Config.DATE_TEXT_FIELD,
    date_key_field: str = Config.DATE_KEY_FIELD,
) -> pd.DataFrame:
    """Return ``df`` with clean headers and an integer yyyymmdd date key column."""
    df = df.copy()
    # Excel exports put a byte order mark in front of the first header
    df.columns = [str(c).lstrip("\ufeff").strip() for c in df.columns]
    if date_text_field not in df.columns:
        raise KeyError(f"column {date_text_field!r} not found")
    keys = df[date_text_field].map(lambda v: encode(v) if isinstance(v, str) else None)
    df[date_key_field] = pd.array(keys.tolist(), dtype="Int64")
    return df


def prepare_export(filename: str, data_dir: str = "data") -> None:
    # Ensure input file exists
    csv_path = os.path.join(data_dir, filename)
    if not os.path.isfile(csv_path):
        print(f"❌ File not found: {csv_path}")
        sys.exit(1)

    # Ensure it’s a CSV file
    if not filename.lower().endswith(".csv"):
        print("❌ Please provide a .csv file.")
        sys.exit(1)

    df = pd.read_csv(csv_path, dtype={Config.DATE_TEXT_FIELD: str}, encoding="utf-8-sig")
    try:
        df = add_date_key(df)
    except KeyError as exc:
        print(f"❌ {exc}")
        sys.exit(1)

    missing = int(df[Config.DATE_KEY_FIELD].isna().sum())
    if missing:
        print(f"⚠️  {missing} row(s) have an unreadable {Config.DATE_TEXT_FIELD}")

    base_name = os.path.splitext(filename)[0]
    parquet_path = os.path.join(data_dir, base_name + ".parquet")
    df.to_parquet(parquet_path, index=False)
    print(f"✅ Added {Config.DATE_KEY_FIELD} and wrote {csv_path} → {parquet_path}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python prepare_export.py <filename.csv> [data_dir]")
        sys.exit(1)
    prepare_export(sys.argv[1], *sys.argv[2:3])
