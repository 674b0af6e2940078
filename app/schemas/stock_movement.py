"""Stock movement (inventory ledger) schemas."""

from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel


class ReferenceDocument(CamelModel):
    type: str
    number: str | None = None
    date: datetime | None = None


class Location(CamelModel):
    warehouse_id: str | None = None
    warehouse_name: str | None = None
    zone: str | None = None
    rack: str | None = None
    bin: str | None = None


class BatchDetails(CamelModel):
    batch_number: str | None = None
    lot_number: str | None = None
    manufacturing_date: datetime | None = None
    expiry_date: datetime | None = None


class QualityCheck(CamelModel):
    checked: bool = False
    checked_by: str | None = None
    status: str = "pending"
    rejected_quantity: float = Field(default=0, ge=0)
    accepted_quantity: float | None = None
    remarks: str | None = None


class StockMovementCreate(CamelModel):
    movement_number: str | None = None
    movement_date: datetime | None = None
    item_id: str = Field(min_length=1)
    item_code: str | None = None
    item_name: str | None = None
    movement_type: str
    reference_document: ReferenceDocument | None = None
    quantity: float
    unit: str = "pcs"
    rate: float = Field(default=0, ge=0)
    total_value: float | None = None
    from_location: Location | None = None
    to_location: Location | None = None
    batch_details: BatchDetails | None = None
    quality_check: QualityCheck | None = None
    approval_required: bool = False
    reason: str | None = None
    notes: str | None = None


class StockMovementUpdate(CamelModel):
    movement_date: datetime | None = None
    item_code: str | None = None
    item_name: str | None = None
    movement_type: str | None = None
    reference_document: ReferenceDocument | None = None
    quantity: float | None = None
    unit: str | None = None
    rate: float | None = Field(default=None, ge=0)
    total_value: float | None = None
    from_location: Location | None = None
    to_location: Location | None = None
    batch_details: BatchDetails | None = None
    quality_check: QualityCheck | None = None
    reason: str | None = None
    notes: str | None = None


class RejectMovementIn(CamelModel):
    reason: str | None = None


class StockMovementOut(CamelModel):
    id: str
    company_id: str
    movement_number: str
    movement_date: datetime
    item_id: str
    item_code: str | None = None
    item_name: str | None = None
    movement_type: str
    reference_document: dict | None = None
    reference_number: str | None = None
    quantity: float
    unit: str
    rate: float
    total_value: float
    from_location: dict | None = None
    to_location: dict | None = None
    batch_details: dict | None = None
    quality_check: dict | None = None
    stock_impact: dict | None = None
    approval_required: bool
    approval_status: str
    approved_by: str | None = None
    approved_at: datetime | None = None
    reason: str | None = None
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class HistoryRowOut(CamelModel):
    movement: StockMovementOut
    balance: float


class ItemHistoryOut(CamelModel):
    item_id: str
    current_balance: float
    history: list[HistoryRowOut]


class InventoryLevelOut(CamelModel):
    item_id: str
    item_code: str | None = None
    item_name: str | None = None
    unit: str
    quantity: float
    last_movement_at: datetime


class TypeStatsOut(CamelModel):
    count: int
    quantity: float
    value: float


class DateCountOut(CamelModel):
    date: str
    count: int


class MovementStatsOut(CamelModel):
    total_movements: int
    total_value: float
    total_quantity_in: float
    total_quantity_out: float
    by_type: dict[str, TypeStatsOut]
    by_date: list[DateCountOut]
    pending_approvals: int
