"""GMO順位チェッカー 順位レポート — メインエントリーポイント.

処理フロー:
  1. ダウンロード済みの最新 CSV を探して読み込む
  2. キーワード・順位・順位変動を抽出して集計
  3. スプレッドシートに当日分の列を反映
  4. 集計結果（失敗時はエラー内容）を Slack に通知
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from datetime import date as date_cls
from pathlib import Path

from rank_reporter.acquisition import decode_csv, find_latest_csv
from rank_reporter.config import load_settings, log_settings, setup_logging
from rank_reporter.errors import RankReporterError, ReconciliationError, TransportError
from rank_reporter.formatter import format_error_message, format_report
from rank_reporter.notifier import SlackNotifier
from rank_reporter.pipeline import run_analysis
from rank_reporter.sheets import GoogleSheetsHandle

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="GMO順位チェッカーの CSV を集計して通知する")
    parser.add_argument("--csv", type=Path, help="CSV ファイル（省略時はダウンロード先の最新ファイル）")
    parser.add_argument("--date", default="", help="計測日 YYYY-MM-DD（省略時は今日）")
    parser.add_argument("--no-sheets", action="store_true", help="スプレッドシートに反映しない")
    return parser.parse_args(argv)


def _open_sheet(
    key_file: str,
    spreadsheet_id: str,
    sheet_name: str,
    errors: list[RankReporterError],
) -> GoogleSheetsHandle | None:
    """シートを開く. 失敗は errors に積み、分析は続行する."""
    try:
        return GoogleSheetsHandle.open(key_file, spreadsheet_id, sheet_name)
    except TransportError as e:
        error = ReconciliationError(f"シートを開けません: {sheet_name}")
        error.__cause__ = e
        logger.error("%s", error.summary())
        errors.append(error)
        return None


def run(argv: list[str] | None = None) -> int:
    """メイン処理. 終了コードを返す."""
    args = parse_args(argv)
    try:
        settings = load_settings()
    except RankReporterError as e:
        print(f"設定エラー: {e}", file=sys.stderr)
        return 1

    setup_logging(settings.log_dir)
    logger.info("=== 順位レポート 開始 ===")
    log_settings(settings)
    start_time = time.time()

    run_date = args.date or date_cls.today().isoformat()
    notifier = SlackNotifier.from_settings(settings)
    message = ""
    exit_code = 1

    try:
        csv_path = args.csv or find_latest_csv(settings.download_dir)
        raw_records = decode_csv(csv_path)

        sheet = distribution_sheet = None
        open_errors: list[RankReporterError] = []
        if not args.no_sheets:
            if settings.sheets_enabled:
                sheet = _open_sheet(
                    settings.service_account_key_file,
                    settings.spreadsheet_id,
                    settings.ranking_sheet,
                    open_errors,
                )
            if settings.distribution_enabled:
                distribution_sheet = _open_sheet(
                    settings.service_account_key_file,
                    settings.distribution_spreadsheet_id,
                    settings.distribution_sheet,
                    open_errors,
                )

        report = run_analysis(
            raw_records,
            run_date,
            settings.group_label,
            sheet,
            settings=settings,
            distribution_sheet=distribution_sheet,
        )
        message = format_report(
            report.analysis,
            run_date,
            settings.group_label,
            top_n=settings.top_n,
            threshold=settings.big_change_threshold,
            sheet_url=settings.sheet_url,
        )
        report.errors[:0] = open_errors
        for name, result in report.reconciliations.items():
            logger.info(
                "%s シート: updated=%s, 更新=%d 件, 追加=%d 件",
                name, result.updated, result.updated_rows, result.new_rows,
            )
        for error in report.errors:
            message += f"※ スプレッドシートへの反映に失敗しました: {error.summary()}\n"
        exit_code = 1 if report.errors else 0
    except RankReporterError as e:
        logger.error("エラーが発生しました: %s", e.summary())
        message = format_error_message(e, run_date)
    except Exception as e:
        logger.exception("予期せぬエラーが発生しました")
        message = format_error_message(e, run_date)
        raise
    finally:
        # 通知の失敗は処理結果に影響させない
        if message:
            notifier.notify(message)

    elapsed = time.time() - start_time
    logger.info("=== 順位レポート 完了 === 終了コード: %d, 所要時間: %.1f 秒", exit_code, elapsed)
    return exit_code


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
