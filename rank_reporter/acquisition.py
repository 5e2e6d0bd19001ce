"""ダウンロード済み CSV エクスポートの検索と読み込み.

ブラウザ操作によるダウンロード自体は外部プロセスが行い、
このモジュールはダウンロード先ディレクトリに置かれた CSV だけを扱う。
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from rank_reporter.errors import AcquisitionError, DecodeError

logger = logging.getLogger(__name__)


def find_latest_csv(directory: Path) -> Path:
    """ディレクトリ内で最も新しい CSV ファイルを返す.

    Raises:
        AcquisitionError: ディレクトリが無い、または CSV が 1 件も無い。
    """
    if not directory.is_dir():
        raise AcquisitionError(f"ダウンロードディレクトリが存在しません: {directory}")

    csv_files = [p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == ".csv"]
    if not csv_files:
        raise AcquisitionError(f"ディレクトリ内に CSV ファイルが見つかりません: {directory}")

    latest = max(csv_files, key=lambda p: p.stat().st_mtime)
    logger.info("最新の CSV ファイル: %s", latest.name)
    return latest


def decode_csv(path: Path) -> list[dict[str, str]]:
    """CSV を「列名 → 値」の辞書のリストに変換する.

    先頭行をヘッダーとして扱い、セルの前後の空白と空行は除く。
    BOM 付き UTF-8 にも対応する。
    """
    try:
        with path.open(encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f)
            rows = [row for row in reader if any(cell.strip() for cell in row)]
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise DecodeError(f"CSV ファイルを読み込めません: {path}") from e

    if not rows:
        logger.warning("CSV ファイルにデータがありません: %s", path)
        return []

    header = [name.strip() for name in rows[0]]
    if not any(header):
        raise DecodeError(f"CSV のヘッダー行が空です: {path}")

    records: list[dict[str, str]] = []
    for row in rows[1:]:
        cells = [cell.strip() for cell in row]
        # 列数が足りない行は空文字で埋める
        cells += [""] * (len(header) - len(cells))
        records.append(dict(zip(header, cells)))

    logger.info("CSV から %d 件のレコードを読み込みました", len(records))
    return records
