"""Alertbot — Alertmanager notifications relayed to Telegram chats."""

__version__ = "0.4.0"
