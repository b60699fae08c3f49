"""Candidate event sources (pattern scanner, webhook receiver)."""

from scout.services.discovery.sources.scanner import PatternScanner, ScanResult
from scout.services.discovery.sources.webhook import WebhookReceiver, WebhookResult

__all__ = ["PatternScanner", "ScanResult", "WebhookReceiver", "WebhookResult"]
