"""Configuration constants for the reporting pipeline."""
from __future__ import annotations

import os

# Number of stored submissions fetched per report (newest first)
REPORT_LIST_LIMIT: int = int(os.getenv("REPORT_LIST_LIMIT", "100"))

# Maximum number of emojis displayed in the sentiment bar
MAX_EMOJI_BAR: int = int(os.getenv("REPORT_MAX_EMOJI_BAR", "20"))

# Maximum number of recent responses listed in the report
MAX_RECENT: int = int(os.getenv("REPORT_MAX_RECENT", "10"))

# Maximum number of themes to list in the report
MAX_THEMES: int = int(os.getenv("REPORT_MAX_THEMES", "5"))

# Maximum free-text answers sent to OpenAI for themes/summary (safety cap)
MAX_AI_ANSWERS: int = int(os.getenv("REPORT_MAX_AI_ANSWERS", "50"))

# Enable OpenAI-generated themes and summary paragraph
AI_INSIGHTS_ENABLED: bool = os.getenv("REPORT_AI_INSIGHTS", "false").lower() in (
    "1",
    "true",
    "yes",
)

# Reports at least this long are uploaded as a file instead of a message
MAX_MESSAGE_CHARS: int = int(os.getenv("REPORT_MAX_MESSAGE_CHARS", "2800"))
