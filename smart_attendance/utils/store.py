import json
import logging
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import uuid4

import pytz
from sqlalchemy.exc import IntegrityError

from ..errors import DuplicateExternalCode, InvalidEnrollment, UserNotFound
from ..models.records import AttendanceRecord, Identity
from .db import AttendanceLog, SessionLocal, User

logger = logging.getLogger(__name__)


def _to_identity(u: User) -> Identity:
    return Identity(
        id=u.user_id,
        name=u.name,
        employee_id=u.employee_id,
        gallery=tuple(json.loads(u.gallery)),
    )


def _to_record(r: AttendanceLog) -> AttendanceRecord:
    return AttendanceRecord(
        id=r.record_id,
        user_id=r.user_id,
        user_name=r.user_name,
        employee_id=r.employee_id,
        timestamp=pytz.utc.localize(r.ts),
    )


def _as_naive_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(pytz.utc).replace(tzinfo=None)


class AttendanceStore:
    """Users and the attendance log, stored with SQLAlchemy."""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    # ==========================
    # USERS
    # ==========================
    async def list_users(self) -> List[Identity]:
        """All enrolled users, in enrollment order."""
        db = self.session_factory()
        try:
            return [_to_identity(u) for u in db.query(User).order_by(User.id).all()]
        finally:
            db.close()

    async def get_user(self, user_id: str) -> Identity:
        db = self.session_factory()
        try:
            u = db.query(User).filter(User.user_id == user_id).first()
            if u is None:
                raise UserNotFound(user_id)
            return _to_identity(u)
        finally:
            db.close()

    async def create_user(self, name: str, employee_id: str, images: Sequence[str]) -> Identity:
        """Enroll a user with the gallery captured in one burst."""
        name = (name or "").strip()
        employee_id = (employee_id or "").strip()
        images = [img for img in (images or []) if img]
        if not name or not employee_id:
            raise InvalidEnrollment("Name and employee ID are required.")
        if not images:
            raise InvalidEnrollment("At least one profile image is required.")

        db = self.session_factory()
        try:
            if db.query(User).filter(User.employee_id == employee_id).first() is not None:
                raise DuplicateExternalCode(employee_id)

            u = User(user_id=uuid4().hex, name=name, employee_id=employee_id, gallery=json.dumps(images))
            db.add(u)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise DuplicateExternalCode(employee_id)
            db.refresh(u)
            identity = _to_identity(u)
        finally:
            db.close()

        logger.info("User registered: %s (%s) with %d images", name, employee_id, len(images))
        return identity

    async def delete_user(self, user_id: str) -> None:
        db = self.session_factory()
        try:
            u = db.query(User).filter(User.user_id == user_id).first()
            if u is None:
                raise UserNotFound(user_id)
            db.delete(u)
            db.commit()
        finally:
            db.close()
        logger.info("User deleted: %s", user_id)

    # ==========================
    # ATTENDANCE LOG
    # ==========================
    async def list_attendance_records(self, since: Optional[datetime] = None,
                                      until: Optional[datetime] = None,
                                      limit: Optional[int] = None) -> List[AttendanceRecord]:
        """Records in append order, optionally bounded in time and to the newest ``limit``."""
        db = self.session_factory()
        try:
            q = db.query(AttendanceLog)
            if since:
                q = q.filter(AttendanceLog.ts >= _as_naive_utc(since))
            if until:
                q = q.filter(AttendanceLog.ts <= _as_naive_utc(until))
            if limit:
                rows = q.order_by(AttendanceLog.id.desc()).limit(limit).all()
                rows.reverse()
            else:
                rows = q.order_by(AttendanceLog.id).all()
            return [_to_record(r) for r in rows]
        finally:
            db.close()

    async def append_attendance_record(self, identity: Identity) -> AttendanceRecord:
        db = self.session_factory()
        try:
            log = AttendanceLog(
                record_id=uuid4().hex,
                user_id=identity.id,
                user_name=identity.name,
                employee_id=identity.employee_id,
                ts=_as_naive_utc(datetime.now(pytz.utc)),
            )
            db.add(log)
            db.commit()
            db.refresh(log)
            record = _to_record(log)
        finally:
            db.close()

        logger.info("Attendance recorded for %s (%s)", identity.name, identity.employee_id)
        return record
