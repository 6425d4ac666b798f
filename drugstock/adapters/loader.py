# drugstock/adapters/loader.py
"""
Loaders for branch snapshots.

Supported inputs:
- JSON export of the all-branches feed: a list of
  ``{userId, userName, branchName, userRole, value: [batch, ...]}``;
  a plain list of batch records or ``{"inventory": [...]}`` is read as a
  single account. Feed accounts come back ordered by `branchName`.
- XLSX/CSV batch sheets (one account), read with pandas. Headers are
  normalized (case, accents, punctuation, synonyms) to the camelCase keys
  of the batch contract.

Each loader returns a list of `BranchData`; parsing of individual values
is delegated to `drugstock.adapters.parsers` and never fails.
"""

from __future__ import annotations

import json
import re
import unicodedata
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from drugstock.adapters.parsers import batches_from_records, branch_from_record
from drugstock.domain.models import BranchData
from drugstock.infra.logger import log_file_operation, log_system_event, print_system


class LoaderError(ValueError):
    """The file cannot be read as a branch snapshot."""


# ---------------------------
# header normalization
# ---------------------------

def _slug(s: Any) -> str:
    """Lowercase, no accents, non-alphanumerics collapsed to single spaces."""
    if s is None:
        return ""
    s = unicodedata.normalize("NFKD", str(s).strip().lower())
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


_ALIASES = {
    "id": "id",
    "batch id": "id",

    "drug": "drugName",
    "drug name": "drugName",
    "drugname": "drugName",
    "medicine": "drugName",
    "medicine name": "drugName",
    "generic name": "drugName",

    "program": "program",
    "programme": "program",

    "dosage": "dosage",
    "strength": "dosage",

    "unit": "unit",
    "uom": "unit",

    "batch": "batchNumber",
    "batch no": "batchNumber",
    "batch number": "batchNumber",
    "batchnumber": "batchNumber",
    "lot": "batchNumber",
    "lot no": "batchNumber",

    "beginning inventory": "beginningInventory",
    "beginninginventory": "beginningInventory",
    "beginning balance": "beginningInventory",

    "quantity received": "quantityReceived",
    "quantityreceived": "quantityReceived",
    "qty received": "quantityReceived",
    "received": "quantityReceived",

    "date received": "dateReceived",
    "datereceived": "dateReceived",
    "received date": "dateReceived",

    "unit cost": "unitCost",
    "unitcost": "unitCost",
    "cost": "unitCost",

    "quantity dispensed": "quantityDispensed",
    "quantitydispensed": "quantityDispensed",
    "qty dispensed": "quantityDispensed",
    "dispensed": "quantityDispensed",

    "expiration date": "expirationDate",
    "expirationdate": "expirationDate",
    "expiry date": "expirationDate",
    "expiry": "expirationDate",
    "exp date": "expirationDate",

    "remarks": "remarks",
    "notes": "remarks",

    "branch id": "branchId",
    "branchid": "branchId",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename sheet columns to the batch contract keys; unknown ones are kept."""
    ren = {}
    for col in df.columns:
        key = _ALIASES.get(_slug(col))
        if key and key not in ren.values():
            ren[col] = key
    return df.rename(columns=ren)


# ---------------------------
# loaders
# ---------------------------

def load_branches_from_json(path: str) -> List[BranchData]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise LoaderError(f"{path}: invalid JSON ({e})") from e

    if isinstance(data, dict) and isinstance(data.get("branches"), list):
        data = data["branches"]

    if isinstance(data, dict):
        # single account: {"userId": ..., "inventory": [...]} or {"inventory": [...]}
        if "value" in data or "inventory" in data:
            return [branch_from_record(data)]
        raise LoaderError(f"{path}: expected a list of branches or batches")

    if not isinstance(data, list):
        raise LoaderError(f"{path}: expected a list of branches or batches")

    if data and all(isinstance(r, dict) and ("value" in r or "inventory" in r) for r in data):
        # accounts ordered by location name, ties keep file order
        return sorted((branch_from_record(r) for r in data), key=lambda b: b.branch_name.casefold())

    # plain list of batches
    return [BranchData(user_id=Path(path).stem, inventory=batches_from_records(data))]


def load_branch_from_sheet(
    path: str,
    sheet_name: Optional[str] = None,
    branch_name: Optional[str] = None,
    user_name: Optional[str] = None,
) -> BranchData:
    """Read one account's batches from an XLSX or CSV sheet."""
    p = Path(path)
    if p.suffix.lower() == ".csv":
        df = pd.read_csv(p)
    else:
        df = pd.read_excel(p, sheet_name=sheet_name or 0)
    df = _normalize_columns(df)
    if "drugName" not in df.columns:
        raise LoaderError(f"{path}: no drug name column found")

    records: List[Dict[str, Any]] = []
    for i, row in enumerate(df.to_dict(orient="records")):
        if row.get("id") is None or pd.isna(row.get("id")):
            row["id"] = f"{p.stem}-{i + 1}"
        records.append(row)

    return BranchData(
        user_id=p.stem,
        user_name=user_name or "Unknown User",
        branch_name=branch_name or "Unknown Branch",
        inventory=batches_from_records(records),
    )


def load_branches(path: str, **kwargs) -> List[BranchData]:
    """Load a snapshot, picking the reader from the file extension."""
    suffix = Path(path).suffix.lower()
    log_system_event("load_branches_start", {"path": str(path)})
    if suffix == ".json":
        branches = load_branches_from_json(str(path))
    elif suffix in (".xlsx", ".xlsm", ".csv"):
        branches = [load_branch_from_sheet(str(path), **kwargs)]
    else:
        raise LoaderError(f"{path}: unsupported file type '{suffix}'")

    log_file_operation(
        "import",
        str(path),
        rows_processed=sum(len(b.inventory) for b in branches),
        branches=len(branches),
    )
    print_system(f">> {len(branches)} account(s) loaded from {path}")
    return branches
