"""Slack 通知用メッセージの作成."""

from __future__ import annotations

from rank_reporter.config import DEFAULT_BIG_CHANGE_THRESHOLD, DEFAULT_TOP_N
from rank_reporter.errors import RankReporterError
from rank_reporter.models import (
    BUCKET_OTHERS,
    BUCKET_TOP3,
    BUCKET_TOP10,
    BUCKET_TOP50,
    AnalysisResult,
    MovedKeyword,
)

_BUCKET_LINES = (
    (BUCKET_TOP3, "1~3位  "),
    (BUCKET_TOP10, "4~10位 "),
    (BUCKET_TOP50, "11~50位"),
    (BUCKET_OTHERS, "それ以下"),
)


def _link(url: str) -> str:
    return f" [<{url}|確認>]" if url else ""


def _rank_text(rank: int | None) -> str:
    return f"{rank}位" if rank is not None else "圏外"


def _moved_line(item: MovedKeyword, arrow: str) -> str:
    return f"・{item.keyword}: {_rank_text(item.rank)} ({arrow}{abs(item.change)})"


def format_report(
    analysis: AnalysisResult,
    date: str,
    group_label: str,
    *,
    top_n: int = DEFAULT_TOP_N,
    threshold: int = DEFAULT_BIG_CHANGE_THRESHOLD,
    sheet_url: str = "",
) -> str:
    """分析結果を Slack 向けのテキストにする."""
    counts = analysis.rank_counts
    percent = analysis.rank_percent
    stats = analysis.change_stats
    total = analysis.total

    lines = [
        f"GMO順位チェッカー順位計測結果（{date}）",
        f"対象グループ：{group_label}",
        "",
        f"■ 順位分布{_link(sheet_url)}",
    ]
    for bucket, label in _BUCKET_LINES:
        lines.append(f"{label}：{percent[bucket]:.2f}% ({counts[bucket]}件)")
    lines.append("")

    lines.append("■ 順位変化")
    for label, count in (("上昇", stats.improved), ("下降", stats.worsened), ("変化なし", stats.unchanged)):
        lines.append(f"{label}：{count}件 ({count / total * 100:.2f}%)")
    lines.append("")

    winners = stats.big_winners[:top_n]
    if winners:
        lines.append(f"■ 大きく上昇したキーワード（{threshold}位以上）")
        lines.extend(_moved_line(item, "↑") for item in winners)
        lines.append("")

    losers = stats.big_losers[:top_n]
    if losers:
        lines.append(f"■ 大きく下降したキーワード（{threshold}位以上）")
        lines.extend(_moved_line(item, "↓") for item in losers)
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"


def format_error_message(error: Exception, date: str) -> str:
    """処理失敗時の通知文."""
    if isinstance(error, RankReporterError):
        detail = error.summary()
    else:
        detail = f"{type(error).__name__}: {error}"
    return f"GMO順位チェッカー順位計測（{date}）でエラーが発生しました: {detail}\n"
