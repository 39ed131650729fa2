"""Persisting parsed documents.

Uploading a specification stores its items under the project. Uploading an
invoice parses it, finds or creates the supplier named on it, re-parses with
that supplier's saved column mapping when there is one, and stores the
invoice with its items, status and parse-quality category.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from specrecon.config import ParsingConfig
from specrecon.db.models import (
    InvoiceItemModel,
    InvoiceModel,
    ProjectModel,
    SpecificationItemModel,
    SpecificationModel,
)
from specrecon.db.suppliers import find_or_create_supplier, get_saved_mapping, save_mapping
from specrecon.ingestion.columns import detect_invoice_columns
from specrecon.ingestion.invoices import parse_invoice_file
from specrecon.ingestion.sources import check_file, read_rows
from specrecon.ingestion.specifications import parse_specification_file
from specrecon.models import (
    ColumnMapping,
    InvoiceItem,
    InvoiceParseResult,
    ParseResult,
    SpecificationItem,
)

logger = structlog.get_logger(__name__)

PROJECT_NOT_FOUND = "Проект не найден"
INVOICE_NOT_FOUND = "Счёт не найден"
INVOICE_FILE_MISSING = "Файл счёта не найден на диске"
NO_SAVED_MAPPING = "Нет сохранённых настроек колонок для поставщика"


@dataclass
class InvoicePreview:
    """Raw rows of a stored invoice with its detected and saved mappings."""

    rows: list[list[str]]
    total_rows: int
    detected_mapping: ColumnMapping | None
    supplier_mapping: ColumnMapping | None
    errors: list[str] = field(default_factory=list)


async def create_project(
    session: AsyncSession, name: str, description: str | None = None
) -> ProjectModel:
    """Create a project.

    Raises:
        ValueError: If name is empty
    """
    if not name or not name.strip():
        raise ValueError("Project name must not be empty")
    project = ProjectModel(name=name.strip(), description=description)
    session.add(project)
    await session.flush()
    logger.info("project_created", project_id=str(project.id), name=project.name)
    return project


async def get_project(session: AsyncSession, project_id: UUID) -> ProjectModel:
    """Raises LookupError for an unknown project."""
    project = await session.get(ProjectModel, project_id)
    if project is None:
        raise LookupError(PROJECT_NOT_FOUND)
    return project


async def get_invoice(session: AsyncSession, invoice_id: UUID) -> InvoiceModel:
    """Raises LookupError for an unknown invoice."""
    invoice = await session.get(InvoiceModel, invoice_id)
    if invoice is None:
        raise LookupError(INVOICE_NOT_FOUND)
    return invoice


def spec_item_from_row(row: SpecificationItemModel) -> SpecificationItem:
    return SpecificationItem(
        id=row.id,
        project_id=row.project_id,
        specification_id=row.specification_id,
        position_number=row.position_number,
        name=row.name,
        characteristics=row.characteristics,
        equipment_code=row.equipment_code,
        manufacturer=row.manufacturer,
        unit=row.unit,
        quantity=row.quantity,
        section=row.section,
    )


def invoice_item_from_row(row: InvoiceItemModel) -> InvoiceItem:
    return InvoiceItem(
        id=row.id,
        invoice_id=row.invoice_id,
        article=row.article,
        name=row.name,
        unit=row.unit,
        quantity=row.quantity,
        price=row.price,
        amount=row.amount,
        row_index=row.row_index,
    )


async def list_spec_items(session: AsyncSession, project_id: UUID) -> list[SpecificationItem]:
    """Specification items of a project in upload order."""
    result = await session.execute(
        select(SpecificationItemModel)
        .outerjoin(
            SpecificationModel,
            SpecificationItemModel.specification_id == SpecificationModel.id,
        )
        .where(SpecificationItemModel.project_id == project_id)
        .order_by(SpecificationModel.upload_seq, SpecificationItemModel.position)
    )
    return [spec_item_from_row(row) for row in result.scalars().all()]


async def list_invoice_items(
    session: AsyncSession, project_id: UUID
) -> tuple[list[InvoiceItem], dict[UUID, UUID | None]]:
    """Invoice items of a project plus the invoice -> supplier map."""
    result = await session.execute(
        select(InvoiceItemModel, InvoiceModel.supplier_id)
        .join(InvoiceModel, InvoiceItemModel.invoice_id == InvoiceModel.id)
        .where(InvoiceModel.project_id == project_id)
        .order_by(InvoiceModel.upload_seq, InvoiceItemModel.row_index)
    )
    items: list[InvoiceItem] = []
    suppliers: dict[UUID, UUID | None] = {}
    for row, supplier_id in result.all():
        items.append(invoice_item_from_row(row))
        suppliers[row.invoice_id] = supplier_id
    return items, suppliers


async def _next_upload_seq(
    session: AsyncSession, model: type[SpecificationModel] | type[InvoiceModel], project_id: UUID
) -> int:
    result = await session.execute(
        select(func.coalesce(func.max(model.upload_seq), 0)).where(model.project_id == project_id)
    )
    return result.scalar_one() + 1


def _add_invoice_items(
    session: AsyncSession, invoice_id: UUID, items: Sequence[InvoiceItem]
) -> None:
    for item in items:
        session.add(
            InvoiceItemModel(
                id=item.id,
                invoice_id=invoice_id,
                article=item.article,
                name=item.name,
                unit=item.unit,
                quantity=item.quantity,
                price=item.price,
                amount=item.amount,
                row_index=item.row_index,
            )
        )


async def ingest_specification(
    session: AsyncSession,
    project_id: UUID,
    file_path: Path,
    section: str | None = None,
    config: ParsingConfig | None = None,
) -> tuple[SpecificationModel, ParseResult]:
    """Parse a specification file and store its items.

    The specification row is stored even when no item was parsed, so the
    caller can show the errors next to it.

    Raises:
        LookupError: If the project doesn't exist
    """
    await get_project(session, project_id)
    result = parse_specification_file(file_path, section, config=config)

    specification = SpecificationModel(
        project_id=project_id,
        section=section,
        file_name=file_path.name,
        upload_seq=await _next_upload_seq(session, SpecificationModel, project_id),
    )
    session.add(specification)
    await session.flush()

    for position, item in enumerate(result.items):
        item.project_id = project_id
        item.specification_id = specification.id
        session.add(
            SpecificationItemModel(
                id=item.id,
                project_id=project_id,
                specification_id=specification.id,
                position=position,
                position_number=item.position_number,
                name=item.name,
                characteristics=item.characteristics,
                equipment_code=item.equipment_code,
                manufacturer=item.manufacturer,
                unit=item.unit,
                quantity=item.quantity,
                section=item.section,
            )
        )
    await session.flush()

    logger.info(
        "specification_ingested",
        project_id=str(project_id),
        file=file_path.name,
        items=len(result.items),
        skipped=result.skipped_rows,
        errors=len(result.errors),
    )
    return specification, result


async def ingest_invoice(
    session: AsyncSession,
    project_id: UUID,
    file_path: Path,
    config: ParsingConfig | None = None,
) -> tuple[InvoiceModel, InvoiceParseResult]:
    """Parse an invoice file and store it with its items.

    Raises:
        LookupError: If the project doesn't exist
    """
    await get_project(session, project_id)
    result = parse_invoice_file(file_path, config=config)

    supplier_id: UUID | None = None
    if result.supplier_name:
        supplier = await find_or_create_supplier(session, result.supplier_name)
        supplier_id = supplier.id
        saved_mapping = await get_saved_mapping(session, supplier_id)
        if saved_mapping is not None:
            logger.info("invoice_reparse_saved_mapping", supplier=supplier.name)
            reparsed = parse_invoice_file(file_path, saved_mapping, config)
            # Header metadata does not depend on the column mapping
            reparsed.supplier_name = result.supplier_name
            result = reparsed

    invoice = InvoiceModel(
        project_id=project_id,
        supplier_id=supplier_id,
        invoice_number=result.invoice_number,
        invoice_date=result.invoice_date,
        total_amount=result.total_amount,
        bik=result.bik,
        correspondent_account=result.correspondent_account,
        file_name=file_path.name,
        file_path=str(file_path),
        status=result.status.value,
        parsing_category=result.quality.value,
        parsing_category_reason=result.quality_reason,
        upload_seq=await _next_upload_seq(session, InvoiceModel, project_id),
    )
    session.add(invoice)
    await session.flush()

    for item in result.items:
        item.invoice_id = invoice.id
    _add_invoice_items(session, invoice.id, result.items)
    await session.flush()

    logger.info(
        "invoice_ingested",
        project_id=str(project_id),
        file=file_path.name,
        items=len(result.items),
        status=invoice.status,
        quality=invoice.parsing_category,
        errors=len(result.errors),
    )
    return invoice, result


def _stored_file(invoice: InvoiceModel) -> Path:
    if not invoice.file_path or not Path(invoice.file_path).exists():
        raise LookupError(INVOICE_FILE_MISSING)
    return Path(invoice.file_path)


async def preview_invoice(
    session: AsyncSession, invoice_id: UUID, config: ParsingConfig | None = None
) -> InvoicePreview:
    """Raw grid of a stored invoice for manual column mapping.

    Raises:
        LookupError: If the invoice or its file doesn't exist
    """
    config = config or ParsingConfig()
    invoice = await get_invoice(session, invoice_id)
    file_path = _stored_file(invoice)

    supplier_mapping = await get_saved_mapping(session, invoice.supplier_id)
    try:
        check_file(file_path, config.max_file_size_mb)
        rows, _ = read_rows(file_path)
    except (OSError, ValueError) as e:
        return InvoicePreview(
            rows=[],
            total_rows=0,
            detected_mapping=None,
            supplier_mapping=supplier_mapping,
            errors=[f"Не удалось прочитать файл: {e}"],
        )

    return InvoicePreview(
        rows=rows,
        total_rows=len(rows),
        detected_mapping=detect_invoice_columns(rows, config.invoice_header_search_rows),
        supplier_mapping=supplier_mapping,
    )


async def reparse_invoice(
    session: AsyncSession,
    invoice_id: UUID,
    mapping: ColumnMapping | None = None,
    config: ParsingConfig | None = None,
) -> InvoiceParseResult:
    """Re-run parsing of a stored invoice, replacing its items.

    A given ``mapping`` is saved for the invoice's supplier first; without
    one the supplier's saved mapping is used. Replacing the items drops
    their match candidates.

    Raises:
        LookupError: If the invoice or its file doesn't exist
        ValueError: If no usable mapping is available
    """
    invoice = await get_invoice(session, invoice_id)
    file_path = _stored_file(invoice)

    if mapping is not None:
        if not mapping.is_valid:
            raise ValueError("Mapping must assign the name column")
        if invoice.supplier_id is not None:
            await save_mapping(session, invoice.supplier_id, mapping)
    else:
        mapping = await get_saved_mapping(session, invoice.supplier_id)
        if mapping is None:
            raise ValueError(NO_SAVED_MAPPING)

    result = parse_invoice_file(file_path, mapping, config)

    await session.execute(delete(InvoiceItemModel).where(InvoiceItemModel.invoice_id == invoice.id))
    for item in result.items:
        item.invoice_id = invoice.id
    _add_invoice_items(session, invoice.id, result.items)

    invoice.status = result.status.value
    invoice.total_amount = result.total_amount
    invoice.parsing_category = result.quality.value
    invoice.parsing_category_reason = result.quality_reason
    await session.flush()

    logger.info(
        "invoice_reparsed",
        invoice_id=str(invoice.id),
        items=len(result.items),
        status=invoice.status,
    )
    return result
