"""順位データの集計モジュール."""

from __future__ import annotations

import logging
from typing import Sequence

from rank_reporter.config import DEFAULT_BIG_CHANGE_THRESHOLD
from rank_reporter.errors import EmptyInputError
from rank_reporter.models import (
    BUCKET_OTHERS,
    BUCKET_TOP3,
    BUCKET_TOP10,
    BUCKET_TOP50,
    BUCKETS,
    AnalysisResult,
    ChangeStats,
    MovedKeyword,
    RankRecord,
)

logger = logging.getLogger(__name__)


def bucket_for(rank: int | None) -> str:
    """順位を順位帯に分類する. 圏外と 51 位以下は others."""
    if rank is None:
        return BUCKET_OTHERS
    if 1 <= rank <= 3:
        return BUCKET_TOP3
    if 4 <= rank <= 10:
        return BUCKET_TOP10
    if 11 <= rank <= 50:
        return BUCKET_TOP50
    return BUCKET_OTHERS


def analyze(
    records: Sequence[RankRecord],
    *,
    threshold: int = DEFAULT_BIG_CHANGE_THRESHOLD,
    positive_is_improvement: bool = True,
) -> AnalysisResult:
    """順位帯の分布と順位変動の統計を計算する.

    Args:
        records: 正規化済みの順位レコード
        threshold: 「大きく動いた」とみなす変動幅
        positive_is_improvement: True なら正の変動値を順位上昇として扱う

    Raises:
        EmptyInputError: records が空。
    """
    if not records:
        raise EmptyInputError("分析対象の順位データが 0 件です")

    rank_counts = {bucket: 0 for bucket in BUCKETS}
    improved = worsened = unchanged = 0
    winners: list[tuple[int, MovedKeyword]] = []
    losers: list[tuple[int, MovedKeyword]] = []

    for record in records:
        rank_counts[bucket_for(record.rank)] += 1

        if record.rank_change is None:
            continue

        # gain > 0 が上昇、gain < 0 が下降
        gain = record.rank_change if positive_is_improvement else -record.rank_change
        moved = MovedKeyword(keyword=record.keyword, rank=record.rank, change=record.rank_change)
        if gain > 0:
            improved += 1
            if gain >= threshold:
                winners.append((gain, moved))
        elif gain < 0:
            worsened += 1
            if -gain >= threshold:
                losers.append((-gain, moved))
        else:
            unchanged += 1

    total = len(records)
    rank_percent = {bucket: count / total * 100 for bucket, count in rank_counts.items()}

    # sorted は安定なので同じ変動幅なら入力順
    change_stats = ChangeStats(
        improved=improved,
        worsened=worsened,
        unchanged=unchanged,
        big_winners=tuple(m for _, m in sorted(winners, key=lambda x: -x[0])),
        big_losers=tuple(m for _, m in sorted(losers, key=lambda x: -x[0])),
    )

    logger.info(
        "分析完了: total=%d, 上昇=%d, 下降=%d, 変化なし=%d",
        total, improved, worsened, unchanged,
    )
    return AnalysisResult(
        rank_counts=rank_counts,
        rank_percent=rank_percent,
        change_stats=change_stats,
        total=total,
    )
