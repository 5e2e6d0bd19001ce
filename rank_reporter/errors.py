"""例外定義.

どの例外も発生した処理段階を stage に持つ。
"""

from __future__ import annotations


class RankReporterError(Exception):
    """順位レポート処理の基底例外."""

    stage = "run"

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def summary(self) -> str:
        cause = self.__cause__
        if cause is None:
            return f"[{self.stage}] {self}"
        return f"[{self.stage}] {self} ({type(cause).__name__}: {cause})"


class ConfigError(RankReporterError):
    stage = "config"


class AcquisitionError(RankReporterError):
    """CSV エクスポートが取得できない."""

    stage = "acquisition"


class DecodeError(RankReporterError):
    """CSV を解析できない."""

    stage = "decode"


class MissingColumnError(RankReporterError):
    """キーワード列または順位列を特定できない."""

    stage = "extract"


class EmptyInputError(RankReporterError):
    """分析対象のレコードが 0 件."""

    stage = "analyze"


class TransportError(RankReporterError):
    """外部サービスとの通信失敗."""

    stage = "transport"


class ReconciliationError(RankReporterError):
    """スプレッドシート反映の失敗. 原因の TransportError を __cause__ に持つ."""

    stage = "reconcile"
