from dataclasses import dataclass
from decimal import Decimal
from typing import List

from models.service import Service
from scheduling.errors import NotFoundError


@dataclass(frozen=True)
class ServiceQuote:
    """Price and duration of a service as read at booking time."""
    service_id: int
    name: str
    price: Decimal
    duration: int


class Catalog:
    """Read-only service lookup used to price and time bookings."""

    def __init__(self, session):
        self.session = session

    def get_service(self, service_id: int) -> ServiceQuote:
        service = self.session.get(Service, service_id)
        if service is None:
            raise NotFoundError(f"Service with ID {service_id} not found", service_id=service_id)
        return ServiceQuote(
            service_id=service.id,
            name=service.name,
            price=Decimal(service.price),
            duration=int(service.duration),
        )

    def quote(self, service_ids) -> List[ServiceQuote]:
        return [self.get_service(sid) for sid in service_ids]
