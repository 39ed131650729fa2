"""Invoice header metadata extraction.

Each field has an ordered list of pure ``text -> value | None`` strategies.
The first strategy that returns a value wins; lower-priority strategies are
not consulted for that source. Sources are either the leading snippet of the
document text or, when the text layer is unusable, the cells of the first
grid rows, scanned in reading order.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

from specrecon.ingestion.numbers import parse_price
from specrecon.ingestion.quality import GARBAGE_RATIO_THRESHOLD, garbage_ratio
from specrecon.models import InvoiceMetadata

logger = logging.getLogger(__name__)

T = TypeVar("T")
Strategy = Callable[[str], T | None]

TEXT_SNIPPET_LENGTH = 3000
METADATA_SEARCH_ROWS = 30

MONTH_NAMES: dict[str, str] = {
    "января": "01",
    "февраля": "02",
    "марта": "03",
    "апреля": "04",
    "мая": "05",
    "июня": "06",
    "июля": "07",
    "августа": "08",
    "сентября": "09",
    "октября": "10",
    "ноября": "11",
    "декабря": "12",
}

_TOKEN = r"[A-Za-zА-Яа-яЁё0-9\-/]"

_INVOICE_LABEL_NUMBER = re.compile(
    rf"(?:счёт|счет|invoice)\s*[№#:]\s*({_TOKEN}+)", re.IGNORECASE
)
_ORDER_LABEL_NUMBER = re.compile(
    rf"(?:заказ\s+клиента|КП|коммерческое\s+предложение)\s*(?:[^№#]*?)[№#]\s*({_TOKEN}+)",
    re.IGNORECASE,
)
_STANDALONE_NUMBER = re.compile(rf"№\s*({_TOKEN}{{2,}})")

_LABELLED_DATE = re.compile(
    r"(?:от|date|дата)\s*[:\s]*(\d{1,2}[.\-/]\d{1,2}[.\-/]\d{4})", re.IGNORECASE
)
_WRITTEN_DATE = re.compile(
    r"(\d{1,2})\s+(" + "|".join(MONTH_NAMES) + r")\s+(\d{4})", re.IGNORECASE
)
_STANDALONE_DATE = re.compile(r"(\d{2}[.\-/]\d{2}[.\-/]\d{4})")

_SUPPLIER_LABEL = re.compile(
    r"(?:поставщик|продавец|исполнитель)\s*[:\s]*([^\n]{3,60})", re.IGNORECASE
)
_LEGAL_FORM = re.compile(
    r"(?<![А-ЯЁа-яё])(ООО|ОАО|ЗАО|ПАО|НАО|ФГУП|ИП|АО)\s*[«\"'(]?([^»\"')\n]{2,50})[»\"')]?"
)
BANK_MARKERS = ("банк", "бик", "р/с", "к/с")

# Payment/delivery/warranty wording that follows the seller name in headers
_BOILERPLATE = re.compile(
    r"\s*(?:условия\s+(?:поставки|оплаты)|сроки?\s+(?:поставки|оплаты)|доставка"
    r"|предоплата|оплата|гаранти\w*)\b.*$",
    re.IGNORECASE,
)
CONDITIONS_STOPLIST = ("условия", "оплат", "доставк", "гаранти", "самовывоз", "срок")
_TRAILING_PUNCTUATION = " \t.,;:-–—"

_TOTAL = re.compile(r"(?:итого|всего|total)\s*[:\s]*([0-9\s]+[.,]\d{2})", re.IGNORECASE)

_BIK = re.compile(r"БИК\s*[:№]?\s*(\d{9})(?!\d)", re.IGNORECASE)
_CORR_LABEL = re.compile(
    r"(?:к/с|корр?(?:еспондентский)?\.?\s*сч[её]т)\s*[:№]?\s*(\d{20})(?!\d)",
    re.IGNORECASE,
)
_CORR_PREFIX = re.compile(r"(?<!\d)(30101\d{15})(?!\d)")


# --- invoice number -------------------------------------------------------


def number_from_invoice_label(text: str) -> str | None:
    match = _INVOICE_LABEL_NUMBER.search(text)
    return match.group(1).strip() if match else None


def number_from_order_label(text: str) -> str | None:
    match = _ORDER_LABEL_NUMBER.search(text)
    return match.group(1).strip() if match else None


def number_standalone(text: str) -> str | None:
    match = _STANDALONE_NUMBER.search(text)
    return match.group(1).strip() if match else None


# --- date -----------------------------------------------------------------


def date_from_label(text: str) -> str | None:
    match = _LABELLED_DATE.search(text)
    return match.group(1).strip() if match else None


def date_written(text: str) -> str | None:
    """``14 января 2026`` -> ``14.01.2026``."""
    match = _WRITTEN_DATE.search(text)
    if not match:
        return None
    month = MONTH_NAMES.get(match.group(2).lower())
    if not month:
        return None
    return f"{match.group(1).zfill(2)}.{month}.{match.group(3)}"


def date_standalone(text: str) -> str | None:
    match = _STANDALONE_DATE.search(text)
    return match.group(1).strip() if match else None


# --- supplier -------------------------------------------------------------


def clean_supplier_name(candidate: str) -> str | None:
    """Trim a supplier candidate down to the organisation name.

    Cuts at the first comma, drops trailing payment/delivery/warranty
    wording and punctuation. Returns None if nothing usable remains.
    """
    name = candidate.split(",", 1)[0]
    name = _BOILERPLATE.sub("", name)
    name = name.strip().rstrip(_TRAILING_PUNCTUATION).strip()
    if not name:
        return None
    lowered = name.lower()
    if any(word in lowered for word in CONDITIONS_STOPLIST):
        return None
    return name


def supplier_from_label(text: str) -> str | None:
    match = _SUPPLIER_LABEL.search(text)
    if not match:
        return None
    return clean_supplier_name(match.group(1).strip())


def supplier_from_legal_form(text: str) -> str | None:
    """First ``ООО ...``-style organisation that is not bank details."""
    for match in _LEGAL_FORM.finditer(text):
        candidate = f"{match.group(1)} {match.group(2)}".strip()
        lowered = candidate.lower()
        if any(marker in lowered for marker in BANK_MARKERS):
            continue
        cleaned = clean_supplier_name(candidate)
        if cleaned:
            return cleaned
    return None


# --- totals and bank details ----------------------------------------------


def total_from_label(text: str) -> float | None:
    match = _TOTAL.search(text)
    return parse_price(match.group(1)) if match else None


def bik_from_label(text: str) -> str | None:
    match = _BIK.search(text)
    return match.group(1) if match else None


def correspondent_account_from_label(text: str) -> str | None:
    match = _CORR_LABEL.search(text)
    return match.group(1) if match else None


def correspondent_account_from_prefix(text: str) -> str | None:
    match = _CORR_PREFIX.search(text)
    return match.group(1) if match else None


INVOICE_NUMBER_STRATEGIES: list[Strategy[str]] = [
    number_from_invoice_label,
    number_from_order_label,
    number_standalone,
]
INVOICE_DATE_STRATEGIES: list[Strategy[str]] = [
    date_from_label,
    date_written,
    date_standalone,
]
SUPPLIER_STRATEGIES: list[Strategy[str]] = [
    supplier_from_label,
    supplier_from_legal_form,
]
TOTAL_STRATEGIES: list[Strategy[float]] = [total_from_label]
BIK_STRATEGIES: list[Strategy[str]] = [bik_from_label]
CORRESPONDENT_ACCOUNT_STRATEGIES: list[Strategy[str]] = [
    correspondent_account_from_label,
    correspondent_account_from_prefix,
]


def first_success(strategies: Sequence[Strategy[T]], sources: Iterable[str]) -> T | None:
    """Apply the strategy cascade to each source in order.

    For every source the strategies are tried by priority; the first
    non-None result is returned.
    """
    for source in sources:
        if not source:
            continue
        for strategy in strategies:
            value = strategy(source)
            if value is not None:
                return value
    return None


def _extract(sources: list[str]) -> InvoiceMetadata:
    return InvoiceMetadata(
        invoice_number=first_success(INVOICE_NUMBER_STRATEGIES, sources),
        invoice_date=first_success(INVOICE_DATE_STRATEGIES, sources),
        supplier_name=first_success(SUPPLIER_STRATEGIES, sources),
        total_amount=first_success(TOTAL_STRATEGIES, sources),
        bik=first_success(BIK_STRATEGIES, sources),
        correspondent_account=first_success(CORRESPONDENT_ACCOUNT_STRATEGIES, sources),
    )


def extract_metadata_from_text(
    text: str, snippet_length: int = TEXT_SNIPPET_LENGTH
) -> InvoiceMetadata:
    """Extract metadata from the leading part of a free-text document."""
    return _extract([text[:snippet_length]])


def extract_metadata_from_rows(
    rows: Sequence[Sequence[str]], search_rows: int = METADATA_SEARCH_ROWS
) -> InvoiceMetadata:
    """Extract metadata cell by cell from the first ``search_rows`` rows."""
    cells = [str(cell) for row in rows[:search_rows] for cell in row if cell]
    return _extract(cells)


def extract_metadata(
    text: str | None,
    rows: Sequence[Sequence[str]] | None = None,
    threshold: float = GARBAGE_RATIO_THRESHOLD,
    snippet_length: int = TEXT_SNIPPET_LENGTH,
    search_rows: int = METADATA_SEARCH_ROWS,
) -> InvoiceMetadata:
    """Extract metadata from text, or from the grid when the text is unusable.

    Text whose garbage ratio exceeds ``threshold`` is treated as unreliable
    and the first ``search_rows`` grid rows are scanned instead.
    """
    if text and text.strip():
        ratio = garbage_ratio(text)
        if ratio <= threshold:
            return extract_metadata_from_text(text, snippet_length)
        logger.info(
            "Text layer unreliable (garbage ratio %.2f), reading metadata from grid", ratio
        )

    if rows:
        return extract_metadata_from_rows(rows, search_rows)
    return InvoiceMetadata()
