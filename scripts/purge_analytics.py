#!/usr/bin/env python3
"""
Delete analytics events older than each owner's plan retention window.

Meant for a daily cron job:
  python scripts/purge_analytics.py
"""
from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nexus_cards.core.logging_config import configure_logging
from nexus_cards.services.analytics_service import AnalyticsService


def main() -> None:
    configure_logging()
    removed = AnalyticsService().purge_expired()
    print(f"Purged {removed} analytics events")


if __name__ == "__main__":
    main()
