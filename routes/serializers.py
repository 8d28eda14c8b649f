from scheduling.normalize import format_time_slot


def money(value):
    return float(value) if value is not None else None


def iso(value):
    return value.isoformat() if value else None


def service_to_dict(s):
    return {
        "id": s.id,
        "name": s.name,
        "description": s.description,
        "category": s.category,
        "price": money(s.price),
        "duration": s.duration,
        "image_url": s.image_url,
        "created_at": iso(s.created_at),
    }


def working_hours_to_dict(h):
    return {
        "id": h.id,
        "staff_id": h.staff_id,
        "day_of_week": h.day_of_week,
        "start_time": format_time_slot(h.start_time),
        "end_time": format_time_slot(h.end_time),
        "is_available": h.is_available,
    }


def staff_to_dict(s, include_hours=False):
    out = {
        "id": s.id,
        "name": s.name,
        "email": s.email,
        "phone": s.phone,
        "specialization": s.specialization,
        "experience_years": s.experience_years,
        "bio": s.bio,
        "is_active": s.is_active,
    }
    if include_hours:
        out["working_hours"] = [working_hours_to_dict(h) for h in s.working_hours]
    return out


def slot_to_dict(s):
    return {
        "id": s.id,
        "service_id": s.service_id,
        "date": s.date.isoformat(),
        "time_slot": format_time_slot(s.time_slot),
        "available": s.available,
    }


def feedback_to_dict(f):
    return {
        "id": f.id,
        "user_id": f.user_id,
        "user_name": (f.user.full_name or f.user.email) if f.user else None,
        "booking_id": f.booking_id,
        "service_id": f.service_id,
        "service_name": f.service.name if f.service else None,
        "rating": f.rating,
        "comment": f.comment,
        "is_visible": f.is_visible,
        "created_at": iso(f.created_at),
    }


def _line_items(b):
    if b.line_items:
        return [
            {
                "service_id": li.service_id,
                "name": li.service.name if li.service else None,
                "price_at_booking": money(li.price_at_booking),
                "duration_at_booking": li.duration_at_booking,
            }
            for li in b.line_items
        ]
    # bookings created before line items existed: current catalog values
    s = b.service
    return [{
        "service_id": b.service_id,
        "name": s.name if s else None,
        "price_at_booking": money(s.price) if s else None,
        "duration_at_booking": s.duration if s else None,
    }]


def booking_to_dict(b, feedback=None, include_user=True):
    items = _line_items(b)
    out = {
        "id": b.id,
        "user_id": b.user_id,
        "service_id": b.service_id,
        "stylist_id": b.stylist_id,
        "stylist_name": b.stylist.name if b.stylist else None,
        "booking_date": b.booking_date.isoformat(),
        "time_slot": format_time_slot(b.time_slot),
        "status": b.status,
        "is_bulk": b.is_bulk,
        "total_price": money(b.total_price),
        "total_duration": b.total_duration,
        "cancellation_reason": b.cancellation_reason,
        "cancellation_requested_at": iso(b.cancellation_requested_at),
        "created_at": iso(b.created_at),
        "updated_at": iso(b.updated_at),
        "services": items,
        "service_names": ", ".join(i["name"] or "" for i in items),
        "service_prices": [i["price_at_booking"] for i in items],
        "service_durations": [i["duration_at_booking"] for i in items],
    }
    if include_user and b.user is not None:
        out["user_name"] = b.user.full_name or b.user.email
        out["user_email"] = b.user.email
    if feedback is not None:
        out["feedback"] = {
            "id": feedback.id,
            "rating": feedback.rating,
            "comment": feedback.comment,
            "created_at": iso(feedback.created_at),
        }
    return out
