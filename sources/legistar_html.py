"""Scraper for the Legistar public calendar HTML table."""
import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from processor.errors import ParseError
from processor.models import RawEventRecord
from sources.base import SourceAdapter

logger = logging.getLogger(__name__)

WHITESPACE = re.compile(r'\s+')


class LegistarTableAdapter(SourceAdapter):
    """Scrapes meetings from the events grid on a Legistar Calendar.aspx page."""

    TABLE_ID = 'ctl00_ContentPlaceHolder1_gvEvents'
    ACCEPT = 'text/html'
    MIN_CELLS = 3

    def request_target(self) -> Tuple[str, Optional[Dict[str, str]]]:
        return self.definition.url, None

    def parse(self, body: str) -> List[RawEventRecord]:
        """
        Parse events from the calendar HTML.

        The first row is the header. Rows with fewer than three cells
        (date, title, location) are skipped.

        Args:
            body: HTML content of the calendar page

        Returns:
            List of RawEventRecord objects

        Raises:
            ParseError: If the events table is not on the page
        """
        soup = BeautifulSoup(body, 'html.parser')
        table = soup.find('table', id=self.TABLE_ID)
        if table is None:
            raise ParseError(f"Events table '{self.TABLE_ID}' not found")

        events = []
        for index, row in enumerate(self._grid_rows(table)):
            if index == 0:
                continue
            event = self._parse_row(row, index)
            if event:
                events.append(event)

        return events

    @staticmethod
    def _grid_rows(table) -> List:
        """Rows belonging to the table itself, not to tables nested in its cells."""
        rows = []
        for child in table.find_all(['thead', 'tbody', 'tfoot', 'tr'], recursive=False):
            if child.name == 'tr':
                rows.append(child)
            else:
                rows.extend(child.find_all('tr', recursive=False))
        return rows

    def _parse_row(self, row, index: int) -> Optional[RawEventRecord]:
        """
        Parse a single table row.

        Args:
            row: BeautifulSoup <tr> element
            index: Row position in the table, header included

        Returns:
            RawEventRecord or None if the row has too few cells
        """
        cells = row.find_all('td', recursive=False)
        if len(cells) < self.MIN_CELLS:
            return None

        date_cell, title_cell, location_cell = cells[:self.MIN_CELLS]
        link = title_cell.find('a', href=True)
        detail_url = urljoin(self.definition.url, link['href']) if link else ''

        # No durable upstream id on this page; the row position stands in.
        return RawEventRecord(
            external_id=f"{self.definition.id_prefix}-{index}",
            title=self._cell_text(title_cell),
            date=self._cell_text(date_cell),
            location=self._cell_text(location_cell),
            detail_url=detail_url
        )

    @staticmethod
    def _cell_text(cell) -> str:
        return WHITESPACE.sub(' ', cell.get_text(' ', strip=True)).strip()
