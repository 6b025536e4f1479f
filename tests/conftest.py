import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pytest

# Set up paths
root_dir = str(Path(__file__).parent.parent)
sys.path.insert(0, root_dir)

from ingest.infra.db import Database
from ingest.infra.http import FetchError

FIXED_NOW = datetime(2025, 7, 10, 12, 0, tzinfo=timezone.utc)

BUSINESS_PAGE = """
<html><body>
<div class="listItemsRow">Acme Fence &amp; Welding Ltd. Larry 4702 51 Avenue Wetaskiwin, AB T9A 0V4 Phone: 780.352.1234</div>
<div class="alt listItemsRow">Amen Thrift ShopTammy Becsko4702 51 AvenueWetaskiwin, AB T9A 0V4Phone: 780-352-1234</div>
<div class="listItemsRow">Short row</div>
<div class="listItemsRow">Lakeside Lodge serving the Wetaskiwin area, call for directions</div>
</body></html>
"""


class FakeHttp:
    """Stands in for HttpClient: canned bodies per URL, or a FetchError."""

    def __init__(self, pages: Optional[Dict[str, Union[str, Exception]]] = None):
        self.pages = dict(pages or {})
        self.requested: List[str] = []

    async def fetch(self, url: str, headers=None) -> Tuple[str, int]:
        self.requested.append(url)
        page = self.pages.get(url)
        if page is None:
            raise FetchError(url, "HTTP 404", status=404)
        if isinstance(page, Exception):
            raise page
        return page, 200

    async def close(self) -> None:
        pass


# Fixtures
@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
async def db(tmp_path):
    """Migrated SQLite database in a temporary directory."""
    database = Database(str(tmp_path / "test.db"))
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def fake_http():
    return FakeHttp()
