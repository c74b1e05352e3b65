"""
Weekly Rhythm - Pydantic Models (v2 syntax)
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


# ============================================
# ENUMS
# ============================================

class Weekday(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


DAYS_OF_WEEK: List[Weekday] = list(Weekday)


class ContextTag(str, Enum):
    WORK = "Work"
    PERSONAL = "Personal"
    HIGH_ENERGY = "HighEnergy"
    LOW_ENERGY = "LowEnergy"
    RELAXED = "Relaxed"
    RUSHED = "Rushed"
    RECOVERY = "Recovery"


class ReminderStatus(str, Enum):
    ACTIVE = "Active"
    SNOOZED = "Snoozed"
    PAUSED = "Paused"
    DONE = "Done"
    IGNORED = "Ignored"


class SuccessState(str, Enum):
    SUCCESS = "success"
    SNOOZED = "snoozed"
    IGNORED = "ignored"


class EnergyTag(str, Enum):
    TEDIOUS = "Tedious"
    ADMIN = "Admin"
    CREATIVE = "Creative"
    SOCIAL = "Social"
    ERRAND = "Errand"
    OTHER = "Other"


class ThemeName(str, Enum):
    EVENING = "Evening"
    FOCUS = "Focus"
    CREATIVE = "Creative"
    RECOVERY = "Recovery"


class ConflictType(str, Enum):
    DND = "dnd"
    OVERLAP = "overlap"


class ResolutionDecision(str, Enum):
    KEEP_OVERLAP = "keep_overlap"
    SHIFT_OVERLAP = "shift_overlap"
    SHIFT_DND = "shift_dnd"


class ReminderActionKind(str, Enum):
    DONE = "done"
    SNOOZE = "snooze"
    PAUSE = "pause"
    IGNORE = "ignore"
    LATER = "later"
    TOGGLE_LOCK = "toggle_lock"
    REVERT_EXPLORATION = "revert_exploration"


# ============================================
# CALENDAR MODELS
# ============================================

class BufferMinutes(BaseModel):
    prep: int = 0
    recovery: int = 0


class ScheduleEvent(BaseModel):
    """A recurring weekly anchor. Times are "HH:MM", start before end, same day."""
    id: str
    day: Weekday
    title: str
    start_time: str
    end_time: str
    context_tags: List[ContextTag] = Field(default_factory=list)
    buffer_minutes: Optional[BufferMinutes] = None

    def has_tag(self, *tags: ContextTag) -> bool:
        return any(tag in self.context_tags for tag in tags)


class DNDWindow(BaseModel):
    """Do-not-disturb window for one weekday; end before start means overnight."""
    day: Weekday
    start_time: str = ""
    end_time: str = ""


# ============================================
# REMINDER MODELS
# ============================================

class SmartReminder(BaseModel):
    id: str
    event_id: str
    offset_minutes: int = 0
    message: str
    why: str = ""
    status: ReminderStatus = ReminderStatus.ACTIVE
    snoozed_until: Optional[datetime] = None
    snooze_history: List[int] = Field(default_factory=list)
    success_history: List[SuccessState] = Field(default_factory=list)
    last_interaction: Optional[datetime] = None
    is_locked: bool = False
    allow_exploration: bool = True
    is_exploratory: bool = False
    original_offset_minutes: Optional[int] = None
    is_stacked_habit: bool = False
    habit_id: Optional[str] = None


class ReminderAction(BaseModel):
    """Tagged reminder action; ``minutes`` is the payload of ``snooze``."""
    kind: ReminderActionKind
    minutes: Optional[int] = None


class ReminderActionResult(BaseModel):
    reminder: SmartReminder
    message: Optional[str] = None


class ActiveReminder(BaseModel):
    """Read-only entry of the active reminder view."""
    reminder: SmartReminder
    event: ScheduleEvent
    trigger_time: datetime
    shifted_reason: Optional[str] = None


class ParsedReminder(BaseModel):
    """Structured result of the natural-language reminder parser."""
    anchor_title: str
    offset_minutes: int
    message: str
    why: str = ""


# ============================================
# CONFLICT MODELS
# ============================================

class Conflict(BaseModel):
    """Transient; lives from a drop attempt until the user picks a resolution."""
    type: ConflictType
    event_to_move_id: str
    target_day: Weekday
    overlapping_event_id: Optional[str] = None


# ============================================
# THEME & HABIT MODELS
# ============================================

class Chunk(BaseModel):
    id: str
    title: str = ""
    energy_tag: EnergyTag
    is_complete: bool = False


class ThemeContext(BaseModel):
    active_chunk: Optional[Chunk] = None
    current_events: List[ScheduleEvent] = Field(default_factory=list)
    schedule_events: List[ScheduleEvent] = Field(default_factory=list)
    current_time: datetime
    dnd_windows: List[DNDWindow] = Field(default_factory=list)


class MicroHabit(BaseModel):
    id: str
    title: str
    description: str = ""
    energy_tag: EnergyTag


class HabitStackSuggestion(BaseModel):
    anchor: ScheduleEvent
    reason: str
    habit: MicroHabit


# ============================================
# STATE & UNDO MODELS
# ============================================

class AppState(BaseModel):
    """Explicit snapshot of everything the engines read."""
    schedule_events: List[ScheduleEvent] = Field(default_factory=list)
    smart_reminders: List[SmartReminder] = Field(default_factory=list)
    dnd_windows: List[DNDWindow] = Field(default_factory=list)
    pause_until: Optional[datetime] = None


class UndoEntry(BaseModel):
    """Prior values of the state collections one mutation replaced."""
    model_config = ConfigDict(frozen=True)

    id: int
    message: str
    snapshot: Dict[str, Any] = Field(default_factory=dict)

    @property
    def collections(self) -> List[str]:
        return list(self.snapshot)


class DropResult(BaseModel):
    """Outcome of dropping an anchor on a day: committed, conflicted, or a no-op."""
    moved: bool = False
    conflict: Optional[Conflict] = None
    message: Optional[str] = None


# ============================================
# API REQUEST MODELS
# ============================================

class AnchorCreate(BaseModel):
    title: str
    start_time: str
    end_time: str
    days: List[Weekday]


class MoveAnchorRequest(BaseModel):
    target_day: Weekday


class ResolveConflictRequest(BaseModel):
    decision: ResolutionDecision


class ReminderCreate(BaseModel):
    event_id: str
    offset_minutes: int = 0
    message: str
    why: str = ""


class ParseReminderRequest(BaseModel):
    text: str


class DNDUpdate(BaseModel):
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class PauseRequest(BaseModel):
    minutes: int = Field(default=60, gt=0)


class WorkBlock(BaseModel):
    start_time: str
    end_time: str
    days: List[Weekday]


class OnboardingRequest(BaseModel):
    work_blocks: List[WorkBlock] = Field(default_factory=list)
    sleep_start: str = "23:00"
    sleep_end: str = "07:00"


class ThemeRequest(BaseModel):
    active_chunk: Optional[Chunk] = None


class SettingUpdate(BaseModel):
    value: str


class HealthStatus(BaseModel):
    status: str = "healthy"
    version: str = "1.0.0"
    storage: str = "memory"
