"""CSV レコードから（キーワード, 順位, 順位変動）を取り出すモジュール.

列名はエクスポートごとに揺れるため、列の特定は次の順で試す:
  1. 既知の列名との完全一致
  2. 列名の部分一致
  3. 値のサンプリング（順位列: 数値、キーワード列: 非数値）
列の特定はバッチにつき 1 回だけ行い、全行で使い回す。
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Mapping, Sequence

from rank_reporter.errors import MissingColumnError
from rank_reporter.models import ColumnMap, RankRecord

logger = logging.getLogger(__name__)

RawRecord = Mapping[str, str]

KEYWORD_COLUMNS = ("キーワード", "keyword", "key_word", "query", "検索キーワード")
KEYWORD_FRAGMENTS = ("キーワード", "key", "word", "query")

RANK_COLUMNS = (
    "G順位", "G_順位", "Google順位", "Google_順位",
    "g_ranking", "google_ranking", "ranking", "順位",
    "g_rank", "google_rank", "grank", "rank",
)
RANK_FRAGMENTS = ("順位", "rank")

CHANGE_COLUMNS = (
    "G変動", "G_変動", "G順位変動", "Google変動", "変動", "前回比",
    "g_change", "google_change", "rank_change", "change",
)
CHANGE_FRAGMENTS = ("変動", "前回比", "change", "diff")

# 圏外を表すセル値
UNRANKED_MARKERS = frozenset({"-", "圏外", "―", "－"})

SAMPLE_SIZE = 10
NUMERIC_RATIO = 0.8

_INT_PATTERN = re.compile(r"[+-]?\d+")


def parse_int(value: str | None) -> int | None:
    """先頭の符号付き整数を読む（"12位" → 12, "+3" → 3）. 読めなければ None."""
    if value is None:
        return None
    text = str(value).strip().replace(",", "").replace("−", "-").replace("＋", "+")
    m = _INT_PATTERN.match(text)
    if not m:
        return None
    return int(m.group())


def parse_rank(value: str | None) -> int | None:
    """順位セルを読む.

    Returns:
        1 以上の順位。圏外は None。

    Raises:
        ValueError: 順位として解釈できない。
    """
    text = (value or "").strip()
    if text in UNRANKED_MARKERS:
        return None
    rank = parse_int(text)
    if rank is None:
        raise ValueError(f"順位として解釈できません: {value!r}")
    return rank if rank >= 1 else None


def _is_rank_like(value: str | None) -> bool:
    text = (value or "").strip()
    return text in UNRANKED_MARKERS or parse_int(text) is not None


# --- 列特定ルール ---------------------------------------------------------
# 各ルールは候補列から 1 列を選ぶか、見つからなければ None を返す。


def match_exact(candidates: Sequence[str], names: Iterable[str]) -> str | None:
    """既知の列名リストの順に完全一致を探す."""
    for name in names:
        if name in candidates:
            return name
    return None


def match_fragment(candidates: Sequence[str], fragments: Iterable[str]) -> str | None:
    """列名に断片を含む最初の列（大文字小文字は区別しない）."""
    lowered = [f.lower() for f in fragments]
    for col in candidates:
        name = col.lower()
        if any(f in name for f in lowered):
            return col
    return None


def _sample(records: Sequence[RawRecord], col: str) -> list[str]:
    return [r.get(col) or "" for r in records[:SAMPLE_SIZE]]


def match_numeric_sample(records: Sequence[RawRecord], candidates: Sequence[str]) -> str | None:
    """先頭 SAMPLE_SIZE 行の 80% 以上が順位として読める最初の列."""
    for col in candidates:
        values = _sample(records, col)
        if not values:
            continue
        numeric = sum(1 for v in values if v.strip() and _is_rank_like(v))
        if numeric / len(values) >= NUMERIC_RATIO:
            logger.info("数値を含む列を見つけました: %s", col)
            return col
    return None


def match_text_sample(records: Sequence[RawRecord], candidates: Sequence[str]) -> str | None:
    """先頭列のサンプル値が数値でなければ先頭列. それ以外は None."""
    if not candidates:
        return None
    col = candidates[0]
    values = [v for v in _sample(records, col) if v.strip()]
    if values and all(parse_int(v) is None for v in values):
        return col
    return None


def _first_match(rules: Iterable[Callable[[], str | None]]) -> str | None:
    for rule in rules:
        col = rule()
        if col:
            return col
    return None


def infer_keyword_column(records: Sequence[RawRecord], columns: Sequence[str]) -> str | None:
    return _first_match([
        lambda: match_exact(columns, KEYWORD_COLUMNS),
        lambda: match_fragment(columns, KEYWORD_FRAGMENTS),
        lambda: match_text_sample(records, columns),
        lambda: columns[0] if columns else None,
    ])


def infer_change_column(records: Sequence[RawRecord], columns: Sequence[str]) -> str | None:
    return _first_match([
        lambda: match_exact(columns, CHANGE_COLUMNS),
        lambda: match_fragment(columns, CHANGE_FRAGMENTS),
    ])


def infer_rank_column(records: Sequence[RawRecord], columns: Sequence[str]) -> str | None:
    return _first_match([
        lambda: match_exact(columns, RANK_COLUMNS),
        lambda: match_fragment(columns, RANK_FRAGMENTS),
        lambda: match_numeric_sample(records, columns),
    ])


def infer_columns(records: Sequence[RawRecord]) -> ColumnMap:
    """先頭レコードの列名からキーワード列・順位列・変動列を特定する.

    Raises:
        MissingColumnError: キーワード列または順位列が特定できない。
    """
    columns = list(records[0].keys()) if records else []

    keyword_col = infer_keyword_column(records, columns)
    if not keyword_col:
        raise MissingColumnError(f"キーワードの列が見つかりませんでした。列名: {columns}")

    rest = [c for c in columns if c != keyword_col]
    change_col = infer_change_column(records, rest)

    # 変動列は順位列の候補から外す（"G順位変動" が "順位" に部分一致するため）
    rank_candidates = [c for c in rest if c != change_col]
    rank_col = infer_rank_column(records, rank_candidates)
    if not rank_col:
        raise MissingColumnError(f"順位の列が見つかりませんでした。列名: {columns}")

    logger.info(
        "列を特定しました: keyword=%s, rank=%s, change=%s",
        keyword_col, rank_col, change_col,
    )
    return ColumnMap(keyword=keyword_col, rank=rank_col, change=change_col)


def extract(raw_records: Sequence[RawRecord]) -> list[RankRecord]:
    """生レコードを RankRecord のリストに正規化する.

    キーワードが空の行と順位が読めない行は捨てる（エクスポート中の空行）。
    """
    if not raw_records:
        logger.warning("抽出対象のレコードがありません")
        return []

    columns = infer_columns(raw_records)

    records: list[RankRecord] = []
    dropped = 0
    for raw in raw_records:
        keyword = (raw.get(columns.keyword) or "").strip()
        if not keyword:
            dropped += 1
            continue
        try:
            rank = parse_rank(raw.get(columns.rank))
        except ValueError:
            dropped += 1
            continue

        change = parse_int(raw.get(columns.change)) if columns.change else None
        records.append(RankRecord(keyword=keyword, rank=rank, rank_change=change))

    logger.info("変換後のデータ: %d 件（除外 %d 件）", len(records), dropped)
    return records
