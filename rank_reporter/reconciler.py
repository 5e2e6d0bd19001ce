"""スプレッドシートへの日次反映モジュール.

シートのレイアウト:
  - 1 行目はヘッダー。A1 は見出し、B1 以降は日付（左ほど新しい）
  - A 列はキーワード（一度割り当てた行は変えない）
  - B 列は常に当日のデータ列

処理の流れ:
  1. ヘッダー行と A 列を読み込み、A1 の見出しが無ければ書き込む
  2. A 列からキーワード → 行番号の対応表を作る
  3. B1 が当日の日付なら反映済みとして何もしない
  4. B 列が使われていれば B 列の左に空列を挿入し、B1 に日付を書く
  5. 既存キーワードは B 列を一括更新、新規キーワードは末尾に行を追加
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

from rank_reporter.errors import ReconciliationError, TransportError
from rank_reporter.models import (
    BUCKET_OTHERS,
    BUCKET_TOP3,
    BUCKET_TOP10,
    BUCKET_TOP50,
    AnalysisResult,
    RankRecord,
    ReconcileResult,
)

logger = logging.getLogger(__name__)

KEYWORD_HEADER = "キーワード"
DISTRIBUTION_HEADER = "指標"
UNRANKED_CELL = "-"

# 分布シートの行見出し
DISTRIBUTION_LABELS = {
    BUCKET_TOP3: "1~3位",
    BUCKET_TOP10: "4~10位",
    BUCKET_TOP50: "11~50位",
    BUCKET_OTHERS: "それ以下",
}

DATA_RANGE = "A:B"
DATE_COLUMN_INDEX = 1  # B 列


class SpreadsheetHandle(Protocol):
    def read_range(self, range_ref: str) -> list[list[Any]]: ...

    def write_range(self, range_ref: str, grid: Sequence[Sequence[Any]]) -> None: ...

    def batch_write(self, updates: Sequence[tuple[str, Sequence[Sequence[Any]]]]) -> None: ...

    def append_rows(self, range_ref: str, rows: Sequence[Sequence[Any]]) -> None: ...

    def insert_column(self, index: int) -> None: ...


def _cell_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _rank_rows(records: Sequence[RankRecord]) -> list[tuple[str, Any]]:
    return [
        (r.keyword, r.rank if r.rank is not None else UNRANKED_CELL)
        for r in records
    ]


def _distribution_rows(analysis: AnalysisResult) -> list[tuple[str, Any]]:
    rows: list[tuple[str, Any]] = [
        (label, round(analysis.rank_percent[bucket], 2))
        for bucket, label in DISTRIBUTION_LABELS.items()
    ]
    stats = analysis.change_stats
    rows += [("上昇", stats.improved), ("下降", stats.worsened), ("変化なし", stats.unchanged)]
    return rows


def _dedupe(rows: Sequence[tuple[str, Any]]) -> dict[str, Any]:
    """同じキーワードが複数あれば後の値を採用する（順序は初出順）."""
    merged: dict[str, Any] = {}
    for key, value in rows:
        merged[key] = value
    return merged


def build_row_index(values: Sequence[Sequence[Any]]) -> dict[str, int]:
    """A 列のキーワード → 1 始まりの行番号. ヘッダー行は除く."""
    index: dict[str, int] = {}
    for i, row in enumerate(values[1:], start=2):
        key = _cell_text(row[0]) if row else ""
        if key and key not in index:
            index[key] = i
    return index


def _column_b_in_use(values: Sequence[Sequence[Any]]) -> bool:
    return any(len(row) > DATE_COLUMN_INDEX and _cell_text(row[DATE_COLUMN_INDEX]) for row in values)


def reconcile(
    data: AnalysisResult | Sequence[RankRecord],
    sheet: SpreadsheetHandle,
    date: str,
    *,
    header_label: str | None = None,
) -> ReconcileResult:
    """当日分のデータをシートの B 列に反映する.

    data が RankRecord の列ならキーワードごとの順位を、AnalysisResult なら
    順位帯ごとの割合と変動件数を書き込む。

    Raises:
        ReconciliationError: スプレッドシートとの通信に失敗した。
    """
    if isinstance(data, AnalysisResult):
        rows = _distribution_rows(data)
        label = header_label or DISTRIBUTION_HEADER
    else:
        rows = _rank_rows(data)
        label = header_label or KEYWORD_HEADER

    try:
        return _reconcile_rows(sheet, date, rows, label)
    except TransportError as e:
        logger.error("スプレッドシートへの反映に失敗しました: %s", e)
        raise ReconciliationError(f"スプレッドシートへの反映に失敗しました（{date}）") from e


def _reconcile_rows(
    sheet: SpreadsheetHandle,
    date: str,
    rows: Sequence[tuple[str, Any]],
    header_label: str,
) -> ReconcileResult:
    values = sheet.read_range(DATA_RANGE)

    if not values or not values[0] or _cell_text(values[0][0]) != header_label:
        logger.info("ヘッダー行を作成します: %s", header_label)
        sheet.write_range("A1", [[header_label]])
        values = sheet.read_range(DATA_RANGE)

    header = values[0] if values else []
    if len(header) > DATE_COLUMN_INDEX and _cell_text(header[DATE_COLUMN_INDEX]) == date:
        logger.info("%s のデータは反映済みのためスキップします", date)
        return ReconcileResult(updated=False)

    row_index = build_row_index(values)

    if _column_b_in_use(values):
        logger.info("既存データの左側に新しい列を挿入します")
        sheet.insert_column(DATE_COLUMN_INDEX)
    sheet.write_range("B1", [[date]])

    updates: list[tuple[str, list[list[Any]]]] = []
    new_rows: list[list[Any]] = []
    for key, value in _dedupe(rows).items():
        row = row_index.get(key)
        if row:
            updates.append((f"B{row}", [[value]]))
        else:
            new_rows.append([key, value])

    if updates:
        sheet.batch_write(updates)
        logger.info("%d 件の既存キーワードを更新しました", len(updates))
    if new_rows:
        sheet.append_rows(DATA_RANGE, new_rows)
        logger.info("%d 件の新しいキーワードを追加しました", len(new_rows))

    return ReconcileResult(updated=True, new_rows=len(new_rows), updated_rows=len(updates))
