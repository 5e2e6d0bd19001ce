"""Google スプレッドシート操作モジュール.

1 つのシート（タブ）に対する読み書きだけを提供する。
範囲は "A:B" や "B5" のようにシート名を除いた A1 表記で指定する。
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from rank_reporter.errors import TransportError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

Grid = Sequence[Sequence[Any]]


def build_service(key_file: str):
    """サービスアカウントの鍵ファイルから Sheets API クライアントを作る."""
    try:
        credentials = service_account.Credentials.from_service_account_file(
            key_file, scopes=SCOPES
        )
    except (OSError, ValueError, GoogleAuthError) as e:
        raise TransportError(f"サービスアカウントの鍵ファイルを読み込めません: {key_file}") from e
    try:
        return build("sheets", "v4", credentials=credentials, cache_discovery=False)
    except (HttpError, httplib2.HttpLib2Error, GoogleAuthError, OSError) as e:
        raise TransportError("Sheets API クライアントを作成できません") from e


class GoogleSheetsHandle:
    """スプレッドシートの 1 シートに対する read/write/insert/append."""

    # 日付ヘッダーが日付型に変換されないよう文字列のまま書き込む
    VALUE_INPUT_OPTION = "RAW"

    def __init__(self, service, spreadsheet_id: str, sheet_name: str) -> None:
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self._sheet_id: int | None = None

    @classmethod
    def open(cls, key_file: str, spreadsheet_id: str, sheet_name: str) -> GoogleSheetsHandle:
        return cls(build_service(key_file), spreadsheet_id, sheet_name)

    def _ref(self, range_ref: str) -> str:
        return f"'{self.sheet_name}'!{range_ref}"

    def _execute(self, request, action: str):
        try:
            return request.execute()
        except (HttpError, httplib2.HttpLib2Error, GoogleAuthError, OSError) as e:
            raise TransportError(f"スプレッドシート操作に失敗しました: {action}") from e

    def _values(self):
        return self.service.spreadsheets().values()

    def read_range(self, range_ref: str) -> list[list[Any]]:
        resp = self._execute(
            self._values().get(spreadsheetId=self.spreadsheet_id, range=self._ref(range_ref)),
            f"read {range_ref}",
        )
        return resp.get("values", [])

    def write_range(self, range_ref: str, grid: Grid) -> None:
        self._execute(
            self._values().update(
                spreadsheetId=self.spreadsheet_id,
                range=self._ref(range_ref),
                valueInputOption=self.VALUE_INPUT_OPTION,
                body={"values": [list(row) for row in grid]},
            ),
            f"write {range_ref}",
        )

    def batch_write(self, updates: Sequence[tuple[str, Grid]]) -> None:
        """複数範囲を 1 リクエストで更新する."""
        if not updates:
            return
        data = [
            {"range": self._ref(ref), "values": [list(row) for row in grid]}
            for ref, grid in updates
        ]
        self._execute(
            self._values().batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={"valueInputOption": self.VALUE_INPUT_OPTION, "data": data},
            ),
            f"batch write {len(data)} ranges",
        )

    def append_rows(self, range_ref: str, rows: Grid) -> None:
        if not rows:
            return
        self._execute(
            self._values().append(
                spreadsheetId=self.spreadsheet_id,
                range=self._ref(range_ref),
                valueInputOption=self.VALUE_INPUT_OPTION,
                insertDataOption="INSERT_ROWS",
                body={"values": [list(row) for row in rows]},
            ),
            f"append {len(rows)} rows",
        )

    def insert_column(self, index: int) -> None:
        """index（0 始まり）の位置に空の列を 1 列挿入する."""
        self._execute(
            self.service.spreadsheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={
                    "requests": [
                        {
                            "insertDimension": {
                                "range": {
                                    "sheetId": self._resolve_sheet_id(),
                                    "dimension": "COLUMNS",
                                    "startIndex": index,
                                    "endIndex": index + 1,
                                },
                                "inheritFromBefore": False,
                            }
                        }
                    ]
                },
            ),
            f"insert column {index}",
        )

    def _resolve_sheet_id(self) -> int:
        """シート名から数値の sheetId を引く."""
        if self._sheet_id is not None:
            return self._sheet_id

        info = self._execute(
            self.service.spreadsheets().get(
                spreadsheetId=self.spreadsheet_id,
                fields="sheets.properties",
            ),
            "get spreadsheet",
        )
        for sheet in info.get("sheets", []):
            props = sheet.get("properties", {})
            if props.get("title") == self.sheet_name:
                self._sheet_id = props["sheetId"]
                return self._sheet_id

        raise TransportError(f"シートが見つかりません: {self.sheet_name}")
