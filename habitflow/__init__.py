"""HabitFlow core library: completion data and statistics engines.

Public API re-exports for convenient imports:
    from habitflow import to_date_key, compute_dashboard, HabitStore, ...
"""

# Workspace & paths
from habitflow.workspace import (
    workspace_root,
    get_user_timezone,
    load_settings,
    save_settings,
    now_local,
    today_str,
    settings_path,
    habits_path,
    completions_path,
    logs_dir,
)

# File I/O
from habitflow.fileio import (
    directory_lock,
    read_text,
    read_json,
    read_yaml,
    write_json_atomic,
    write_yaml_atomic,
)

# Logging
from habitflow.logconfig import setup_logging

# Date keys
from habitflow.datekey import (
    is_date_key,
    to_date_key,
    parse_date_key,
    local_date,
    shift_days,
    date_keys_back,
    month_date_keys,
    days_between,
)

# Completion sets
from habitflow.completions import (
    build_completion_sets,
    completion_map,
    extract_date_value,
    extract_habit_id,
    prune_orphans,
    toggle_date,
)

# Streaks
from habitflow.streaks import current_streak, streak_summary

# Statistics
from habitflow.stats import (
    js_round,
    today_ratio,
    daily_tallies,
    coerce_tallies,
    average_daily_rates,
    rolling_average,
    monthly_average,
    lifetime_rates,
    top_habits,
    day_status,
    calendar_month,
    motivational_message,
    compute_dashboard,
)

# Habits
from habitflow.habits import (
    validate_habit,
    find_habit,
    new_habit_id,
    create_habit,
    update_habit,
    delete_habit,
    toggle_completion,
    set_completion_dates,
)

# Store
from habitflow.store import HabitStore, InvalidHabits, StoreUnavailable

# Export / import
from habitflow.transfer import (
    EXPORT_VERSION,
    export_snapshot,
    parse_import,
    write_export,
    read_import,
)

# Models
from habitflow.models import (
    Settings,
    Habit,
    Snapshot,
    RateSummary,
    DayTally,
    RollingAverage,
    MonthlyAverage,
    HabitRate,
    StreakSummary,
    CalendarDay,
    Dashboard,
)
