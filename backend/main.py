"""
Weekly Rhythm - FastAPI Backend
Anchors, smart reminders, DND windows, conflict resolution, adaptive themes and undo.
"""

import re
import uuid
from contextlib import asynccontextmanager
from typing import Optional, List

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_config_summary, get_storage_config
from database import db, load_state, save_state
from errors import AnchorNotFoundError, RhythmError
from habits import HabitCatalog
from logger import logger
from models import (
    ActiveReminder, AnchorCreate, AppState, Conflict, DNDUpdate, DNDWindow, DropResult,
    HealthStatus, MoveAnchorRequest, OnboardingRequest, ParseReminderRequest, PauseRequest,
    ReminderAction, ReminderActionResult, ReminderCreate, ResolveConflictRequest,
    ScheduleEvent, SettingUpdate, SmartReminder, ThemeRequest, Weekday,
)
from reminder_parser import parse_reminder
from scheduler import week_view
from settings_manager import SettingsManager
from store import RhythmStore


VERSION = "1.0.0"

store = RhythmStore()
habit_catalog = HabitCatalog()


def _short_id() -> str:
    return uuid.uuid4().hex[:8]


def _slug(text: str) -> str:
    return re.sub(r"\s+", "-", text.strip())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    storage = get_storage_config()
    if storage.enabled:
        await db.connect()
        store.replace_state(await load_state(storage.user_id))
        logger.info(f"Loaded state for {storage.user_id}")

    logger.info(f"Server started (version {VERSION})")
    yield

    if storage.enabled:
        await db.disconnect()
    logger.info("Server shutting down")


app = FastAPI(
    title="Weekly Rhythm",
    description="Anchors, smart reminders and adaptive themes for a weekly routine",
    version=VERSION,
    lifespan=lifespan
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RhythmError)
async def rhythm_error_handler(request: Request, exc: RhythmError):
    logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# ============================================
# HEALTH & STATE
# ============================================

@app.get("/health", response_model=HealthStatus)
@app.get("/api/health", response_model=HealthStatus)
async def health_check():
    return HealthStatus(
        status="healthy",
        version=VERSION,
        storage="postgres" if db.is_connected else "memory"
    )


@app.get("/api/state", response_model=AppState)
async def get_state():
    return store.state


@app.post("/api/sync")
async def sync_state():
    """Write the full local state to storage. Failures surface as 503; local state stays authoritative."""
    storage = get_storage_config()
    if not storage.enabled:
        raise HTTPException(status_code=400, detail="Storage is disabled")
    written = await save_state(storage.user_id, store.state)
    return {"success": True, "documents_written": written}


# ============================================
# ANCHORS
# ============================================

@app.get("/api/anchors", response_model=List[ScheduleEvent])
async def list_anchors():
    return store.state.schedule_events


@app.get("/api/anchors/week")
async def get_week():
    return week_view(store.state.schedule_events, store.state.dnd_windows)


@app.post("/api/anchors", response_model=List[ScheduleEvent])
async def create_anchors(anchor: AnchorCreate):
    if not anchor.days:
        raise HTTPException(status_code=400, detail="Pick at least one day")
    return store.add_anchors(
        anchor.title,
        anchor.start_time,
        anchor.end_time,
        anchor.days,
        lambda day: f"manual-{_slug(anchor.title)}-{day.value}-{_short_id()}"
    )


@app.post("/api/anchors/{event_id}/duplicate", response_model=ScheduleEvent)
async def duplicate_anchor(event_id: str):
    return store.duplicate_anchor(event_id, f"copy-{event_id}-{_short_id()}")


@app.delete("/api/anchors/{event_id}", response_model=ScheduleEvent)
async def delete_anchor(event_id: str):
    return store.delete_anchor(event_id)


@app.post("/api/anchors/{event_id}/move", response_model=DropResult)
async def move_anchor(event_id: str, request: MoveAnchorRequest):
    """Drop an anchor on another day; returns either the committed move or a conflict."""
    return store.drop_anchor(event_id, request.target_day)


# ============================================
# CONFLICTS
# ============================================

@app.get("/api/conflicts/pending", response_model=Optional[Conflict])
async def get_pending_conflict():
    return store.pending_conflict


@app.post("/api/conflicts/resolve", response_model=DropResult)
async def resolve_conflict(request: ResolveConflictRequest):
    return store.resolve_conflict(request.decision)


@app.post("/api/conflicts/cancel")
async def cancel_conflict():
    return {"cancelled": store.cancel_conflict()}


# ============================================
# REMINDERS
# ============================================

@app.get("/api/reminders", response_model=List[SmartReminder])
async def list_reminders():
    return store.state.smart_reminders


@app.get("/api/reminders/active", response_model=List[ActiveReminder])
async def get_active_reminders():
    return store.active_reminders()


@app.post("/api/reminders", response_model=List[SmartReminder])
async def create_reminder(reminder: ReminderCreate):
    if not any(a.id == reminder.event_id for a in store.state.schedule_events):
        raise AnchorNotFoundError(f"Anchor {reminder.event_id} not found")
    created = SmartReminder(
        id=f"manual-sr-{reminder.event_id}-{_short_id()}",
        event_id=reminder.event_id,
        offset_minutes=reminder.offset_minutes,
        message=reminder.message,
        why=reminder.why,
    )
    return store.add_reminders([created])


@app.post("/api/reminders/parse", response_model=List[SmartReminder])
async def create_reminder_from_text(request: ParseReminderRequest):
    """Natural-language reminder. Only the AI call leaves the event loop; the store is updated here."""
    titles = [a.title for a in store.state.schedule_events]
    parsed = await run_in_threadpool(parse_reminder, request.text, titles)
    return store.add_parsed_reminder(parsed, lambda anchor: f"manual-sr-{anchor.id}-{_short_id()}")


@app.post("/api/reminders/{reminder_id}/actions", response_model=ReminderActionResult)
async def reminder_action(reminder_id: str, action: ReminderAction):
    return store.apply_reminder_action(reminder_id, action)


# ============================================
# DND & PAUSE
# ============================================

@app.get("/api/dnd", response_model=List[DNDWindow])
async def list_dnd_windows():
    return store.state.dnd_windows


@app.put("/api/dnd/{day}", response_model=List[DNDWindow])
async def update_dnd_window(day: Weekday, update: DNDUpdate):
    return store.update_dnd_window(day, update.start_time, update.end_time)


@app.post("/api/dnd/apply-all", response_model=List[DNDWindow])
async def apply_dnd_to_all():
    return store.apply_dnd_to_all()


@app.post("/api/pause")
async def pause_reminders(request: PauseRequest):
    return {"pause_until": store.set_pause(request.minutes)}


@app.delete("/api/pause")
async def resume_reminders():
    store.clear_pause()
    return {"pause_until": None}


# ============================================
# THEME & HABITS
# ============================================

@app.get("/api/theme")
async def get_theme():
    return {"theme": store.current_theme()}


@app.post("/api/theme")
async def get_theme_for_chunk(request: ThemeRequest):
    return {"theme": store.current_theme(request.active_chunk)}


@app.get("/api/habits/suggestion")
async def get_habit_suggestion():
    return {"suggestion": store.habit_suggestion(habit_catalog)}


@app.get("/api/habits/{habit_id}/streak")
async def get_habit_streak(habit_id: str):
    return store.habit_tracker.get_streak(habit_id)


# ============================================
# HISTORY & UNDO
# ============================================

@app.get("/api/history")
async def get_history():
    return [
        {"id": entry.id, "message": entry.message, "collections": entry.collections}
        for entry in store.history.entries()
    ]


@app.post("/api/undo")
async def undo(entry_id: Optional[int] = Query(default=None)):
    entry = store.undo(entry_id)
    return {"undone": entry.message, "state": store.state}


# ============================================
# ONBOARDING
# ============================================

@app.post("/api/onboarding", response_model=AppState)
async def complete_onboarding(request: OnboardingRequest):
    store.apply_onboarding(request.work_blocks, request.sleep_start, request.sleep_end)
    return store.state


# ============================================
# SETTINGS
# ============================================

@app.get("/api/settings")
async def get_settings():
    return {
        "settings": SettingsManager.get_manageable_settings(),
        "summary": get_config_summary()
    }


@app.put("/api/settings/{key}")
async def update_setting(key: str, update: SettingUpdate):
    if not SettingsManager.update_setting(key, update.value):
        raise HTTPException(status_code=400, detail=f"Cannot update setting {key}")
    return {"success": True, "key": key}


# ============================================
# RUN SERVER
# ============================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
