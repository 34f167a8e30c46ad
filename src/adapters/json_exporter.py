"""JSON export of a receipt (snapshot + summary)."""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.models import AccountSnapshot, ReceiptSummary


def export_receipt_json(
    *,
    snapshot: AccountSnapshot,
    summary: ReceiptSummary,
    output_path: Path,
    transaction_id: str | None = None,
) -> Path:
    """Write UTF-8 JSON with a stable layout (sorted keys, 2-space indent)."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "snapshot": snapshot.model_dump(mode="json"),
        "summary": summary.model_dump(mode="json"),
    }
    if transaction_id:
        payload["transaction_id"] = transaction_id
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
