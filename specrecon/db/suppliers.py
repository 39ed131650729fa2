"""Suppliers and their saved invoice column mappings."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from specrecon.db.models import SupplierModel, SupplierParserConfigModel
from specrecon.models import ColumnMapping

logger = logging.getLogger(__name__)


async def find_or_create_supplier(session: AsyncSession, name: str) -> SupplierModel:
    """Supplier with exactly this (trimmed) name, created when missing.

    Raises:
        ValueError: If name is empty
    """
    name = name.strip()
    if not name:
        raise ValueError("Supplier name must not be empty")

    result = await session.execute(select(SupplierModel).where(SupplierModel.name == name))
    supplier = result.scalar_one_or_none()
    if supplier is not None:
        return supplier

    supplier = SupplierModel(name=name)
    session.add(supplier)
    await session.flush()
    logger.info("Created supplier %r", name)
    return supplier


async def get_saved_mapping(
    session: AsyncSession, supplier_id: UUID | None
) -> ColumnMapping | None:
    """Saved mapping of a supplier, None when absent or malformed."""
    if supplier_id is None:
        return None

    result = await session.execute(
        select(SupplierParserConfigModel.config).where(
            SupplierParserConfigModel.supplier_id == supplier_id
        )
    )
    config = result.scalar_one_or_none()
    if not config:
        return None

    mapping = ColumnMapping.from_saved(config)
    if mapping is None:
        logger.warning("Ignoring malformed saved mapping for supplier %s", supplier_id)
    return mapping


async def save_mapping(
    session: AsyncSession, supplier_id: UUID, mapping: ColumnMapping
) -> None:
    """Store (or replace) a supplier's column mapping.

    Raises:
        ValueError: If the mapping has no name column
    """
    if not mapping.is_valid:
        raise ValueError("Mapping must assign the name column")

    result = await session.execute(
        select(SupplierParserConfigModel).where(
            SupplierParserConfigModel.supplier_id == supplier_id
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        session.add(
            SupplierParserConfigModel(supplier_id=supplier_id, config=mapping.to_saved())
        )
    else:
        row.config = mapping.to_saved()
    await session.flush()
