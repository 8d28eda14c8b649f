from models.staff import Staff
from scheduling.errors import NotFoundError


class Directory:
    """Staff lookup. Only used to validate an optional stylist assignment."""

    def __init__(self, session):
        self.session = session

    def staff_exists(self, staff_id: int) -> bool:
        staff = self.session.get(Staff, staff_id)
        return staff is not None and staff.is_active

    def require_staff(self, staff_id: int):
        if not self.staff_exists(staff_id):
            raise NotFoundError(f"Staff member {staff_id} not found", stylist_id=staff_id)
