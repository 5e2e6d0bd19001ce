"""設定モジュール — 環境変数・定数定義.

環境変数は load_settings() でだけ読み込み、各コンポーネントには
Settings の値を引数で渡す。
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from rank_reporter.errors import ConfigError

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

ENV_PREFIX = "RANK_CHECKER_"

# --- 順位チェッカー ---
DEFAULT_GROUP = "DM_SとAランクキーワード"

# --- Google Sheets ---
DEFAULT_RANKING_SHEET = "GMO順位チェッカー"
DEFAULT_DISTRIBUTION_SHEET = "順位分布"

# --- Slack ---
DEFAULT_SLACK_USERNAME = "GMO順位チェッカー自動通知"
DEFAULT_SLACK_ICON = ":rankneko:"

# --- 分析 ---
DEFAULT_BIG_CHANGE_THRESHOLD = 3
DEFAULT_TOP_N = 5


@dataclass(frozen=True)
class Settings:
    """実行 1 回分の設定."""

    group_label: str = DEFAULT_GROUP
    download_dir: Path = _PROJECT_ROOT / "downloads"
    log_dir: Path = _PROJECT_ROOT / "logs"

    slack_webhook_url: str = ""
    slack_channel: str = ""
    slack_username: str = DEFAULT_SLACK_USERNAME
    slack_icon_emoji: str = DEFAULT_SLACK_ICON
    slack_thread_ts: str = ""
    slack_broadcast: bool = True

    spreadsheet_id: str = ""
    ranking_sheet: str = DEFAULT_RANKING_SHEET
    distribution_spreadsheet_id: str = ""
    distribution_sheet: str = DEFAULT_DISTRIBUTION_SHEET
    service_account_key_file: str = ""
    sheet_url: str = ""

    positive_change_is_improvement: bool = True
    big_change_threshold: int = DEFAULT_BIG_CHANGE_THRESHOLD
    top_n: int = DEFAULT_TOP_N

    @property
    def sheets_enabled(self) -> bool:
        return bool(self.spreadsheet_id and self.service_account_key_file)

    @property
    def distribution_enabled(self) -> bool:
        return bool(self.distribution_spreadsheet_id and self.service_account_key_file)


def _get(env: Mapping[str, str], name: str, default: str = "") -> str:
    value = env.get(ENV_PREFIX + name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} は整数で指定してください: {raw!r}") from e


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get(env, name).lower()
    if not raw:
        return default
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{ENV_PREFIX}{name} は true/false で指定してください: {raw!r}")


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """環境変数（と .env）から Settings を組み立てる.

    Args:
        env: 読み込み元。省略時は .env を読み込んだうえで os.environ を使う。
    """
    if env is None:
        load_dotenv(_PROJECT_ROOT / ".env")
        env = os.environ

    defaults = Settings()
    threshold = _get_int(env, "BIG_CHANGE_THRESHOLD", DEFAULT_BIG_CHANGE_THRESHOLD)
    top_n = _get_int(env, "TOP_N", DEFAULT_TOP_N)
    if threshold < 1:
        raise ConfigError(f"{ENV_PREFIX}BIG_CHANGE_THRESHOLD は 1 以上: {threshold}")
    if top_n < 0:
        raise ConfigError(f"{ENV_PREFIX}TOP_N は 0 以上: {top_n}")

    return Settings(
        group_label=_get(env, "GROUP", DEFAULT_GROUP),
        download_dir=Path(_get(env, "DOWNLOAD_DIR", str(defaults.download_dir))),
        log_dir=Path(_get(env, "LOG_DIR", str(defaults.log_dir))),
        slack_webhook_url=_get(env, "SLACK_WEBHOOK_URL"),
        slack_channel=_get(env, "SLACK_CHANNEL"),
        slack_username=_get(env, "SLACK_USERNAME", DEFAULT_SLACK_USERNAME),
        slack_icon_emoji=_get(env, "SLACK_ICON_EMOJI", DEFAULT_SLACK_ICON),
        slack_thread_ts=_get(env, "SLACK_THREAD_TS"),
        slack_broadcast=_get_bool(env, "SLACK_BROADCAST", True),
        spreadsheet_id=_get(env, "SPREADSHEET_ID"),
        ranking_sheet=_get(env, "RANKING_SHEET", DEFAULT_RANKING_SHEET),
        distribution_spreadsheet_id=_get(env, "DISTRIBUTION_SPREADSHEET_ID"),
        distribution_sheet=_get(env, "DISTRIBUTION_SHEET", DEFAULT_DISTRIBUTION_SHEET),
        service_account_key_file=_get(env, "GOOGLE_SERVICE_ACCOUNT_KEY_FILE"),
        sheet_url=_get(env, "SHEET_URL"),
        positive_change_is_improvement=_get_bool(env, "POSITIVE_CHANGE_IS_IMPROVEMENT", True),
        big_change_threshold=threshold,
        top_n=top_n,
    )


def log_settings(settings: Settings) -> None:
    """秘匿情報を伏せて設定内容をログ出力する."""
    logger = logging.getLogger(__name__)
    logger.info(
        "環境設定: group=%s, slack=%s, sheets=%s, distribution=%s",
        settings.group_label,
        "設定済み" if settings.slack_webhook_url else "未設定",
        "設定済み" if settings.sheets_enabled else "未設定",
        "設定済み" if settings.distribution_enabled else "未設定",
    )


def setup_logging(log_dir: Path) -> None:
    """ロギングの初期設定."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"rank_reporter_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )
