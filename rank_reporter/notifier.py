"""Slack Incoming Webhook への通知モジュール."""

from __future__ import annotations

import logging

import requests

from rank_reporter.config import Settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15  # 秒


class SlackNotifier:
    """Webhook にテキストを投稿する. 失敗しても例外は投げない."""

    def __init__(
        self,
        webhook_url: str,
        channel: str = "",
        username: str = "",
        icon_emoji: str = "",
        thread_ts: str = "",
        broadcast: bool = True,
    ) -> None:
        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.icon_emoji = icon_emoji
        self.thread_ts = thread_ts
        self.broadcast = broadcast

    @classmethod
    def from_settings(cls, settings: Settings) -> SlackNotifier:
        return cls(
            webhook_url=settings.slack_webhook_url,
            channel=settings.slack_channel,
            username=settings.slack_username,
            icon_emoji=settings.slack_icon_emoji,
            thread_ts=settings.slack_thread_ts,
            broadcast=settings.slack_broadcast,
        )

    def build_payload(self, message: str) -> dict:
        payload: dict = {"text": message}
        if self.channel:
            payload["channel"] = self.channel
        if self.username:
            payload["username"] = self.username
        if self.icon_emoji:
            payload["icon_emoji"] = self.icon_emoji
        if self.thread_ts:
            payload["thread_ts"] = self.thread_ts
            if self.broadcast:
                payload["reply_broadcast"] = True
        return payload

    def notify(self, message: str) -> bool:
        """メッセージを送信する.

        Returns:
            送信できたら True。Webhook 未設定・送信失敗は False。
        """
        if not self.webhook_url:
            logger.info("Slack Webhook URL が設定されていないため、通知をスキップします")
            return False

        try:
            resp = requests.post(
                self.webhook_url,
                json=self.build_payload(message),
                timeout=REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error("Slack 通知の送信に失敗しました: %s", e)
            return False

        logger.info("Slack 通知を送信しました")
        return True
