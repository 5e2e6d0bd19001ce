"""reconciler モジュールのテスト（メモリ上のシートを使う）."""

import re

import pytest

from rank_reporter.analyzer import analyze
from rank_reporter.errors import ReconciliationError, TransportError
from rank_reporter.models import RankRecord
from rank_reporter.reconciler import build_row_index, reconcile

_CELL = re.compile(r"([A-Z]+)(\d+)")


def _col(letters: str) -> int:
    n = 0
    for ch in letters:
        n = n * 26 + ord(ch) - ord("A") + 1
    return n - 1


class FakeSheet:
    """Sheets API の値の返し方（末尾の空セル・空行を省く）を真似たシート."""

    def __init__(self, rows=None):
        self.rows = [list(r) for r in (rows or [])]
        self.calls = []

    def _set(self, ref, value):
        letters, num = _CELL.fullmatch(ref).groups()
        r, c = int(num) - 1, _col(letters)
        while len(self.rows) <= r:
            self.rows.append([])
        row = self.rows[r]
        while len(row) <= c:
            row.append("")
        row[c] = value

    def _trimmed(self):
        rows = []
        for row in self.rows:
            row = list(row)
            while row and row[-1] in ("", None):
                row.pop()
            rows.append(row)
        while rows and not rows[-1]:
            rows.pop()
        return rows

    def read_range(self, range_ref):
        self.calls.append(("read", range_ref))
        assert range_ref == "A:B"
        return [row[:2] for row in self._trimmed()]

    def write_range(self, range_ref, grid):
        self.calls.append(("write", range_ref))
        self._set(range_ref, grid[0][0])

    def batch_write(self, updates):
        self.calls.append(("batch", len(updates)))
        for ref, grid in updates:
            self._set(ref, grid[0][0])

    def append_rows(self, range_ref, rows):
        self.calls.append(("append", len(rows)))
        self.rows = self._trimmed()
        self.rows.extend(list(r) for r in rows)

    def insert_column(self, index):
        self.calls.append(("insert", index))
        for row in self.rows:
            if len(row) > index:
                row.insert(index, "")

    def column(self, idx):
        return [row[idx] if len(row) > idx else "" for row in self.rows]


class FailingSheet(FakeSheet):
    def batch_write(self, updates):
        raise TransportError("boom")


def _recs(*pairs):
    return [RankRecord(keyword=k, rank=r) for k, r in pairs]


class TestBuildRowIndex:
    def test_skip_header_and_blank(self):
        values = [["キーワード", "2026-10-18"], ["a", 1], [], ["b"]]
        assert build_row_index(values) == {"a": 2, "b": 4}


class TestReconcile:
    """reconcile のテスト."""

    def test_empty_sheet(self):
        """空のシートではヘッダーを作り、B 列に直接書き込むこと."""
        sheet = FakeSheet()
        result = reconcile(_recs(("a", 3), ("b", 12)), sheet, "2026-10-19")

        assert result.updated is True
        assert result.new_rows == 2
        assert result.updated_rows == 0
        assert ("insert", 1) not in sheet.calls
        assert sheet.rows == [["キーワード", "2026-10-19"], ["a", 3], ["b", 12]]

    def test_insert_new_column(self):
        """既存の日付列は右にずれ、新しい日付が B 列に入ること."""
        sheet = FakeSheet([
            ["キーワード", "2026-10-18", "2026-10-17"],
            ["a", 5, 6],
            ["b", 8, 9],
        ])
        result = reconcile(_recs(("b", 7), ("a", 4)), sheet, "2026-10-19")

        assert result.updated is True
        assert result.updated_rows == 2
        assert result.new_rows == 0
        assert sheet.rows == [
            ["キーワード", "2026-10-19", "2026-10-18", "2026-10-17"],
            ["a", 4, 5, 6],
            ["b", 7, 8, 9],
        ]
        # 既存キーワードの更新は 1 回のバッチで行う
        assert [c for c in sheet.calls if c[0] == "batch"] == [("batch", 2)]

    def test_new_keywords_appended_in_order(self):
        sheet = FakeSheet([["キーワード", "2026-10-18"], ["k1", 1], ["k2", 2]])
        reconcile(_recs(("n2", 30), ("k1", 1), ("n1", 40)), sheet, "2026-10-19")

        assert sheet.column(0) == ["キーワード", "k1", "k2", "n2", "n1"]
        assert sheet.rows[3][:2] == ["n2", 30]
        assert sheet.rows[4][:2] == ["n1", 40]
        # 今回データの無い k2 の B 列は空
        assert sheet.rows[2][1] == ""

    def test_same_date_is_noop(self):
        """同じ日付で 2 回実行しても列が増えないこと."""
        sheet = FakeSheet()
        reconcile(_recs(("a", 3)), sheet, "2026-10-19")
        before = [list(r) for r in sheet.rows]

        result = reconcile(_recs(("a", 1), ("z", 9)), sheet, "2026-10-19")

        assert result.updated is False
        assert sheet.rows == before
        assert ("insert", 1) not in sheet.calls

    def test_header_written_once(self):
        sheet = FakeSheet([["キーワード", "2026-10-18"], ["a", 1]])
        reconcile(_recs(("a", 2)), sheet, "2026-10-19")

        assert ("write", "A1") not in sheet.calls

    def test_duplicate_keyword_last_wins(self):
        sheet = FakeSheet()
        reconcile(_recs(("a", 3), ("a", 5)), sheet, "2026-10-19")

        assert sheet.rows == [["キーワード", "2026-10-19"], ["a", 5]]

    def test_unranked_written_as_dash(self):
        sheet = FakeSheet()
        reconcile([RankRecord(keyword="a", rank=None)], sheet, "2026-10-19")

        assert sheet.rows[1] == ["a", "-"]

    def test_distribution_rows(self):
        """AnalysisResult を渡すと順位帯の割合と変動件数を書き込むこと."""
        analysis = analyze([
            RankRecord("a", 2, 4),
            RankRecord("b", 15, -1),
            RankRecord("c", 100, 0),
        ])
        sheet = FakeSheet()
        result = reconcile(analysis, sheet, "2026-10-19")

        assert result.new_rows == 7
        assert sheet.rows[0] == ["指標", "2026-10-19"]
        assert sheet.rows[1] == ["1~3位", 33.33]
        assert sheet.rows[2] == ["4~10位", 0.0]
        assert sheet.rows[5:] == [["上昇", 1], ["下降", 1], ["変化なし", 1]]

    def test_transport_failure_wrapped(self):
        sheet = FailingSheet([["キーワード", "2026-10-18"], ["a", 1]])

        with pytest.raises(ReconciliationError) as exc_info:
            reconcile(_recs(("a", 2)), sheet, "2026-10-19")

        assert isinstance(exc_info.value.__cause__, TransportError)
        assert exc_info.value.stage == "reconcile"
