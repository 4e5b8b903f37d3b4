# Overview: Minimal member directory used by the booking core and the CLI.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Member
from ..validation import ConflictError, NotFoundError, ValidationError, clean_str
from .concurrency import run_in_transaction


def create_member(membership_no: str, name: str, *, email: str | None = None, contact_no: str | None = None) -> Member:
    membership_no = clean_str(membership_no, max_length=32, field="membership_no")
    name = clean_str(name, max_length=255, field="name")
    if not membership_no or not name:
        raise ValidationError("membership_no and name are required")

    def _op() -> Member:
        member = Member(
            membership_no=membership_no,
            name=name,
            email=clean_str(email, max_length=255, field="email"),
            contact_no=clean_str(contact_no, max_length=64, field="contact_no"),
            is_active=True,
        )
        db.session.add(member)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Member {membership_no} already exists") from exc
        return member

    return run_in_transaction(_op)


def set_member_active(membership_no: str, is_active: bool) -> Member:
    def _op() -> Member:
        member = db.session.query(Member).filter_by(membership_no=membership_no).first()
        if not member:
            raise NotFoundError(f"Member {membership_no} not found")
        member.is_active = bool(is_active)
        return member

    return run_in_transaction(_op)


def get_member(membership_no: str) -> Member:
    member = db.session.query(Member).filter_by(membership_no=membership_no).first()
    if not member:
        raise NotFoundError(f"Member {membership_no} not found")
    return member


def list_members(*, include_inactive: bool = False) -> list[Member]:
    query = db.session.query(Member)
    if not include_inactive:
        query = query.filter(Member.is_active.is_(True))
    return query.order_by(Member.membership_no.asc()).all()
