"""Customer visit schemas: visit records and their expense line items.

`purpose` and `travel_type` are plain strings; the service checks them
against the allowed values so the error envelope carries a readable message.
"""

from datetime import date, datetime

from pydantic import EmailStr, Field

from app.schemas.common import CamelModel


class TravelDetails(CamelModel):
    origin: str
    destination: str
    travel_mode: str
    departure_date: datetime | None = None
    return_date: datetime | None = None
    travel_class: str | None = None


class AccommodationDetails(CamelModel):
    hotel_name: str
    check_in: date | None = None
    check_out: date | None = None
    room_type: str | None = None
    total_cost: float = Field(default=0, ge=0)


class FoodExpenseIn(CamelModel):
    date: datetime
    meal_type: str
    restaurant: str
    location: str
    number_of_people: int = Field(default=1, ge=1)
    cost_per_person: float = Field(ge=0)
    description: str | None = None
    bill_number: str | None = None


class GiftIn(CamelModel):
    item_name: str
    item_type: str
    quantity: int = Field(default=1, ge=1)
    unit_cost: float = Field(ge=0)
    description: str | None = None
    recipient_name: str | None = None


class TransportationExpense(CamelModel):
    date: datetime
    type: str
    from_place: str = Field(alias="from")
    to_place: str = Field(alias="to")
    cost: float = Field(ge=0)
    description: str | None = None
    bill_number: str | None = None


class OtherExpense(CamelModel):
    date: datetime
    category: str
    description: str
    cost: float = Field(ge=0)
    bill_number: str | None = None


class VisitOutcome(CamelModel):
    status: str = "pending"
    notes: str = ""
    next_action_required: str | None = None
    next_follow_up_date: datetime | None = None
    business_generated: float | None = None
    potential_business: float | None = None


class CustomerVisitCreate(CamelModel):
    party_name: str = Field(min_length=1, max_length=255)
    contact_person: str = Field(min_length=1, max_length=255)
    contact_phone: str = Field(min_length=1, max_length=50)
    contact_email: EmailStr | None = None
    visit_date: datetime
    purpose: str
    purpose_description: str = Field(min_length=1)
    travel_type: str
    travel_details: TravelDetails
    accommodation_details: AccommodationDetails | None = None
    food_expenses: list[FoodExpenseIn] = []
    gifts_given: list[GiftIn] = []
    transportation_expenses: list[TransportationExpense] = []
    other_expenses: list[OtherExpense] = []
    visit_outcome: VisitOutcome = Field(default_factory=VisitOutcome)
    notes: str | None = None


class CustomerVisitUpdate(CamelModel):
    party_name: str | None = None
    contact_person: str | None = None
    contact_phone: str | None = None
    contact_email: EmailStr | None = None
    visit_date: datetime | None = None
    purpose: str | None = None
    purpose_description: str | None = None
    travel_type: str | None = None
    travel_details: TravelDetails | None = None
    accommodation_details: AccommodationDetails | None = None
    food_expenses: list[FoodExpenseIn] | None = None
    gifts_given: list[GiftIn] | None = None
    transportation_expenses: list[TransportationExpense] | None = None
    other_expenses: list[OtherExpense] | None = None
    visit_outcome: VisitOutcome | None = None
    notes: str | None = None


class ApproveVisitIn(CamelModel):
    reimbursement_amount: float | None = Field(default=None, ge=0)


class RejectIn(CamelModel):
    reason: str | None = None


class CustomerVisitOut(CamelModel):
    id: str
    company_id: str
    party_name: str
    contact_person: str
    contact_phone: str
    contact_email: str | None = None
    visit_date: datetime
    purpose: str
    purpose_description: str
    travel_type: str
    travel_details: dict
    accommodation_details: dict | None = None
    food_expenses: list[dict] = []
    gifts_given: list[dict] = []
    transportation_expenses: list[dict] = []
    other_expenses: list[dict] = []
    visit_outcome: dict = {}
    total_expenses: dict[str, float]
    approval_status: str
    approved_by: str | None = None
    approved_at: datetime | None = None
    reimbursement_amount: float | None = None
    reimbursed_at: datetime | None = None
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class ExpenseStatsOut(CamelModel):
    total_visits: int
    total_expenses: float
    average_expense_per_visit: float
    by_category: dict[str, float]
    pending_approvals: int
    approved: int
    rejected: int
    reimbursed: int
