"""Quiz-related constants shared across the session engine, grading and API layers."""

POINTS_PER_QUESTION: int = 10
MAX_VIOLATIONS: int = 3
WARNING_DISMISS_SECONDS: float = 4.0
TIMER_INTERVAL_SECONDS: float = 1.0
MIN_CHOICE_OPTIONS: int = 2
MANUAL_GRADE_MIN: int = 0
MANUAL_GRADE_MAX: int = 100
MANUAL_GRADE_TITLE_TEMPLATE: str = "Assignment: {module_title}"
ONLINE_WINDOW_MINUTES: int = 30
SCHEDULE_TIME_FORMAT: str = "%d/%m/%Y %H:%M"
