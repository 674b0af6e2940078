"""CustomerVisit repository."""

from app.domain.customer_visit import CustomerVisit
from app.repositories.base import BaseRepository


class CustomerVisitRepository(BaseRepository[CustomerVisit]):
    model = CustomerVisit
    search_fields = ("party_name", "contact_person", "contact_phone", "purpose_description")
