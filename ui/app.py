# ui/app.py
import asyncio
import base64

import pandas as pd
import streamlit as st

from smart_attendance.camera.capture import CapturePipeline
from smart_attendance.config import settings
from smart_attendance.errors import CameraError, EnrollmentError, UserNotFound
from smart_attendance.logging_config import setup_logging
from smart_attendance.models.oracle import OllamaVisionOracle
from smart_attendance.utils.checkin import check_in
from smart_attendance.utils.db import init_db
from smart_attendance.utils.images import strip_data_url
from smart_attendance.utils.presentation import local_time, present
from smart_attendance.utils.store import AttendanceStore

setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
init_db()

store = AttendanceStore()
oracle = OllamaVisionOracle()

ICONS = {"check-circle": "✅", "x-circle": "❌", "alert-triangle": "⚠️"}


def run_capture(label: str):
    """Run one capture burst with a progress bar. Returns the frames, or None on camera error."""
    bar = st.progress(0.0, text=label)

    def on_progress(event):
        bar.progress(event.progress, text=f"Capturing... {event.index}/{event.total}")

    try:
        return asyncio.run(CapturePipeline.from_settings().capture(on_progress=on_progress))
    except CameraError as e:
        st.error(str(e))
        return None
    finally:
        bar.empty()


def image_bytes(data_url: str) -> bytes:
    return base64.b64decode(strip_data_url(data_url))


# ==========================
# STREAMLIT INTERFACE
# ==========================
st.set_page_config(page_title=settings.PROJECT_NAME, page_icon="🏢", layout="wide")
st.title(f"🏢 {settings.PROJECT_NAME}")

tab1, tab2, tab3 = st.tabs(["📌 Enroll", "✅ Check in", "📄 Attendance Log"])

# ==========================
# TAB 1: ENROLL
# ==========================
with tab1:
    st.header("Enroll New User")
    users = asyncio.run(store.list_users())

    name = st.text_input("Full Name")
    employee_id = st.text_input("Employee ID")

    gallery = st.session_state.get("gallery")
    if gallery:
        st.image([image_bytes(img) for img in gallery], width=120)
        if st.button("🗑️ Discard pictures"):
            st.session_state.pop("gallery", None)
            st.rerun()
    elif st.button("📷 Start Capture Sequence"):
        frames = run_capture("Starting camera...")
        if frames:
            st.session_state["gallery"] = frames
            st.rerun()
        elif frames is not None:
            st.warning("Could not capture an image. Please try again.")

    if st.button("Register User"):
        if not name or not employee_id or not gallery:
            st.warning("All fields including a profile picture sequence are required.")
        elif any(u.employee_id == employee_id.strip() for u in users):
            st.error("An employee with this ID is already registered.")
        else:
            try:
                identity = asyncio.run(store.create_user(name, employee_id, gallery))
            except EnrollmentError as e:
                st.error(str(e))
            else:
                st.session_state.pop("gallery", None)
                st.success(f"{identity.name} registered.")
                st.rerun()

    st.subheader("Registered Users")
    if not users:
        st.info("No users registered yet.")
    for user in users:
        col_photo, col_name, col_id, col_delete = st.columns([1, 3, 3, 1])
        col_photo.image(image_bytes(user.thumbnail), width=48)
        col_name.write(user.name)
        col_id.write(user.employee_id)
        if col_delete.button("🗑️", key=f"delete-{user.id}"):
            st.session_state["pending_delete"] = user.id

        if st.session_state.get("pending_delete") == user.id:
            st.warning(f"Are you sure you want to delete {user.name}? This action cannot be undone.")
            col_confirm, col_cancel = st.columns(2)
            if col_confirm.button("Confirm delete", key=f"confirm-delete-{user.id}"):
                st.session_state.pop("pending_delete", None)
                try:
                    asyncio.run(store.delete_user(user.id))
                except UserNotFound:
                    st.error("Failed to delete user.")
                else:
                    st.rerun()
            if col_cancel.button("Cancel", key=f"cancel-delete-{user.id}"):
                st.session_state.pop("pending_delete", None)
                st.rerun()

# ==========================
# TAB 2: CHECK IN
# ==========================
with tab2:
    st.header("Mark Your Attendance")
    st.info("Position your face clearly in the camera frame and press the button.")

    if st.button("Mark Attendance"):
        frames = run_capture("Starting camera...")
        if frames is not None:
            with st.spinner("Verifying your identity... Please hold still."):
                result = asyncio.run(check_in(frames, store, oracle))
            view = present(result.outcome, checked_in_at=result.record.timestamp if result.record else None)
            st.session_state["last_view"] = view

    view = st.session_state.get("last_view")
    if view is not None:
        show = {"success": st.success, "no_users": st.warning}.get(view.status, st.error)
        show(f"{ICONS.get(view.icon, '')} **{view.title}**\n\n{view.details}")
        if st.button(view.action):
            st.session_state.pop("last_view", None)
            st.rerun()

# ==========================
# TAB 3: ATTENDANCE LOG
# ==========================
with tab3:
    st.header("Attendance Log")
    records = asyncio.run(store.list_attendance_records(limit=settings.LOGS_LIMIT))

    if not records:
        st.info("No attendance records yet.")
    else:
        df = pd.DataFrame(
            [
                {
                    "User Name": r.user_name,
                    "Employee ID": r.employee_id,
                    "Timestamp": local_time(r.timestamp).strftime("%Y-%m-%d %H:%M:%S"),
                }
                for r in reversed(records)
            ]
        )
        st.dataframe(df, use_container_width=True, height=360)
