"""データモデル定義."""

from __future__ import annotations

from dataclasses import dataclass, field

from rank_reporter.errors import RankReporterError

# 順位帯（表示順）
BUCKET_TOP3 = "1-3"
BUCKET_TOP10 = "4-10"
BUCKET_TOP50 = "11-50"
BUCKET_OTHERS = "others"
BUCKETS = (BUCKET_TOP3, BUCKET_TOP10, BUCKET_TOP50, BUCKET_OTHERS)


@dataclass
class ColumnMap:
    """CSV のどの列を使うか."""

    keyword: str
    rank: str
    change: str | None = None  # None = 変動列なし


@dataclass(frozen=True)
class RankRecord:
    """正規化済みの 1 キーワード分の順位."""

    keyword: str
    rank: int | None  # None = 圏外
    rank_change: int | None = None  # None = 変動データなし（0 とは区別する）


@dataclass(frozen=True)
class MovedKeyword:
    """大きく順位が動いたキーワード."""

    keyword: str
    rank: int | None
    change: int  # CSV の値そのまま（符号付き）


@dataclass(frozen=True)
class ChangeStats:
    """順位変動の集計."""

    improved: int = 0
    worsened: int = 0
    unchanged: int = 0
    big_winners: tuple[MovedKeyword, ...] = ()  # 上昇幅の大きい順
    big_losers: tuple[MovedKeyword, ...] = ()  # 下降幅の大きい順


@dataclass(frozen=True)
class AnalysisResult:
    """順位データの分析結果."""

    rank_counts: dict[str, int]
    rank_percent: dict[str, float]
    change_stats: ChangeStats
    total: int


@dataclass
class ReconcileResult:
    """スプレッドシート反映の結果."""

    updated: bool
    new_rows: int = 0
    updated_rows: int = 0


@dataclass
class RunReport:
    """run_analysis の戻り値."""

    analysis: AnalysisResult
    reconciliations: dict[str, ReconcileResult] = field(default_factory=dict)
    errors: list[RankReporterError] = field(default_factory=list)
