from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ["ES_REMOTE_URL"] = "http://search.test:9200"
os.environ["ES_INDEX_NAME"] = "common-crawl-en"
os.environ["ES_OBJECT_TYPE"] = "texts"
os.environ["SEARCH_METRICS_ENABLED"] = "true"
os.environ.pop("ES_HIGHLIGHT_FIELD", None)
os.environ.pop("HIGHLIGHT_MATCH_STRATEGY", None)
