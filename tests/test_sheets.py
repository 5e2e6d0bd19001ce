"""sheets モジュールのモックテスト."""

from unittest.mock import MagicMock, patch

import httplib2
import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError
from httplib2 import Response

from rank_reporter.errors import ReconciliationError, TransportError
from rank_reporter.models import RankRecord
from rank_reporter.reconciler import reconcile
from rank_reporter.sheets import GoogleSheetsHandle, build_service


def _handle():
    service = MagicMock()
    return GoogleSheetsHandle(service, "sheet-id", "GMO順位チェッカー"), service


def _http_error():
    response = Response({"status": "500", "reason": "Internal Server Error"})
    return HttpError(response, b'{"error": {"message": "backend"}}')


class TestReadWrite:
    """値の読み書きのテスト."""

    def test_read_range(self):
        handle, service = _handle()
        values = service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {"values": [["キーワード"]]}

        assert handle.read_range("A:B") == [["キーワード"]]
        values.get.assert_called_once_with(
            spreadsheetId="sheet-id", range="'GMO順位チェッカー'!A:B"
        )

    def test_read_range_empty(self):
        handle, service = _handle()
        values = service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {}

        assert handle.read_range("A:B") == []

    def test_write_range(self):
        handle, service = _handle()
        values = service.spreadsheets.return_value.values.return_value

        handle.write_range("B1", [["2026-10-19"]])

        values.update.assert_called_once_with(
            spreadsheetId="sheet-id",
            range="'GMO順位チェッカー'!B1",
            valueInputOption="RAW",
            body={"values": [["2026-10-19"]]},
        )

    def test_batch_write(self):
        handle, service = _handle()
        values = service.spreadsheets.return_value.values.return_value

        handle.batch_write([("B2", [[3]]), ("B5", [[12]])])

        body = values.batchUpdate.call_args.kwargs["body"]
        assert body["data"] == [
            {"range": "'GMO順位チェッカー'!B2", "values": [[3]]},
            {"range": "'GMO順位チェッカー'!B5", "values": [[12]]},
        ]

    def test_batch_write_skip_empty(self):
        handle, service = _handle()
        handle.batch_write([])
        service.spreadsheets.assert_not_called()

    def test_append_rows(self):
        handle, service = _handle()
        values = service.spreadsheets.return_value.values.return_value

        handle.append_rows("A:B", [["a", 1]])

        kwargs = values.append.call_args.kwargs
        assert kwargs["insertDataOption"] == "INSERT_ROWS"
        assert kwargs["body"] == {"values": [["a", 1]]}


class TestInsertColumn:
    """insert_column のテスト."""

    def test_insert_uses_sheet_id(self):
        handle, service = _handle()
        sheets = service.spreadsheets.return_value
        sheets.get.return_value.execute.return_value = {
            "sheets": [
                {"properties": {"title": "別シート", "sheetId": 1}},
                {"properties": {"title": "GMO順位チェッカー", "sheetId": 42}},
            ]
        }

        handle.insert_column(1)

        request = sheets.batchUpdate.call_args.kwargs["body"]["requests"][0]
        assert request["insertDimension"]["range"] == {
            "sheetId": 42,
            "dimension": "COLUMNS",
            "startIndex": 1,
            "endIndex": 2,
        }

    def test_unknown_sheet(self):
        handle, service = _handle()
        service.spreadsheets.return_value.get.return_value.execute.return_value = {"sheets": []}

        with pytest.raises(TransportError):
            handle.insert_column(1)


class TestErrors:
    """通信エラーの変換のテスト."""

    def test_http_error(self):
        handle, service = _handle()
        values = service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.side_effect = _http_error()

        with pytest.raises(TransportError) as exc_info:
            handle.read_range("A:B")
        assert isinstance(exc_info.value.__cause__, HttpError)

    def test_os_error(self):
        handle, service = _handle()
        values = service.spreadsheets.return_value.values.return_value
        values.update.return_value.execute.side_effect = TimeoutError("timed out")

        with pytest.raises(TransportError):
            handle.write_range("A1", [["キーワード"]])

    @pytest.mark.parametrize(
        "error",
        [
            httplib2.ServerNotFoundError("Unable to find the server at sheets.googleapis.com"),
            RefreshError("invalid_grant: Token has been expired or revoked."),
        ],
    )
    def test_network_and_auth_errors(self, error):
        """DNS 失敗やトークン更新失敗も TransportError になること."""
        handle, service = _handle()
        values = service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.side_effect = error

        with pytest.raises(TransportError) as exc_info:
            handle.read_range("A:B")
        assert exc_info.value.__cause__ is error

    def test_reconcile_wraps_refresh_error(self):
        """トークン更新失敗は reconcile で ReconciliationError になること."""
        handle, service = _handle()
        values = service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.side_effect = RefreshError("token")

        with pytest.raises(ReconciliationError):
            reconcile([RankRecord("a", 1)], handle, "2026-10-19")

    @patch("rank_reporter.sheets.service_account.Credentials.from_service_account_file")
    def test_missing_key_file(self, mock_creds):
        mock_creds.side_effect = FileNotFoundError("no such file")

        with pytest.raises(TransportError):
            build_service("missing.json")

    @patch("rank_reporter.sheets.build")
    @patch("rank_reporter.sheets.service_account.Credentials.from_service_account_file")
    def test_build_failure(self, mock_creds, mock_build):
        mock_build.side_effect = httplib2.ServerNotFoundError("dns")

        with pytest.raises(TransportError):
            build_service("key.json")
