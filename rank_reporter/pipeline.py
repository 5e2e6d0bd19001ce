"""抽出 → 分析 → スプレッドシート反映 をまとめて実行する."""

from __future__ import annotations

import logging
from typing import Sequence

from rank_reporter.analyzer import analyze
from rank_reporter.config import Settings
from rank_reporter.errors import ReconciliationError
from rank_reporter.extractor import RawRecord, extract
from rank_reporter.models import RunReport
from rank_reporter.reconciler import SpreadsheetHandle, reconcile

logger = logging.getLogger(__name__)


def run_analysis(
    raw_records: Sequence[RawRecord],
    date: str,
    group_label: str,
    sheet: SpreadsheetHandle | None = None,
    *,
    settings: Settings,
    distribution_sheet: SpreadsheetHandle | None = None,
) -> RunReport:
    """CSV レコードを分析し、シートが渡されていれば当日分を反映する.

    抽出・分析の失敗（MissingColumnError, EmptyInputError）はそのまま送出する。
    反映の失敗は RunReport.errors に積み、分析結果は返す。
    """
    logger.info("分析開始: group=%s, date=%s, レコード=%d 件", group_label, date, len(raw_records))

    records = extract(raw_records)
    analysis = analyze(
        records,
        threshold=settings.big_change_threshold,
        positive_is_improvement=settings.positive_change_is_improvement,
    )
    report = RunReport(analysis=analysis)

    targets = (("ranking", sheet, records), ("distribution", distribution_sheet, analysis))
    for name, handle, data in targets:
        if handle is None:
            continue
        try:
            report.reconciliations[name] = reconcile(data, handle, date)
        except ReconciliationError as e:
            logger.error("%s シートの反映に失敗しました: %s", name, e.summary())
            report.errors.append(e)

    return report
