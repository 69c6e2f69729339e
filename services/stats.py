"""
Statistics Service

Pure functions over plans and history records: completion percentages,
calorie and macro summaries, week/month views, streaks and exercise progress.
"""

import calendar
import math
from datetime import timedelta

from constants.validation import MACRO_FIELDS, VALID_TIME_RANGES


def round_half_up(value):
    """Round like a person would: 2.5 -> 3."""
    return int(math.floor(value + 0.5))


def percentage(part, whole, cap=None):
    if not whole or whole <= 0:
        return 0
    result = round_half_up(part * 100.0 / whole)
    if cap is not None:
        result = min(cap, result)
    return result


# ============================================
# DAY COMPLETION
# ============================================

def workout_completion(workout):
    """Percent of exercises done in a workout day."""
    exercises = (workout or {}).get('exercises') or []
    done = sum(1 for exercise in exercises if exercise.get('completed'))
    return percentage(done, len(exercises))


def diet_completion(meals):
    """Percent of meal items eaten in a diet day."""
    items = [item for meal in (meals or []) for item in (meal.get('items') or [])]
    done = sum(1 for item in items if item.get('completed'))
    return percentage(done, len(items))


def calorie_stats(meals):
    """Calories eaten versus calories on the day's menu."""
    consumed = 0.0
    total = 0.0
    for meal in meals or []:
        for item in meal.get('items') or []:
            calories = item.get('calories') or 0
            total += calories
            if item.get('completed'):
                consumed += calories
    return {
        'consumed': round_half_up(consumed),
        'total': round_half_up(total),
        'percentage': percentage(consumed, total),
    }


# ============================================
# MACRO VIEWS
# ============================================

def _date_str(day):
    return day.strftime('%Y-%m-%d')


def week_dates(day):
    """The Monday-to-Sunday week containing `day`."""
    start = day - timedelta(days=day.weekday())
    return [start + timedelta(days=offset) for offset in range(7)]


def month_dates(day):
    days_in_month = calendar.monthrange(day.year, day.month)[1]
    start = day.replace(day=1)
    return [start + timedelta(days=offset) for offset in range(days_in_month)]


def macros_for_day(history_by_date, day):
    entry = history_by_date.get(_date_str(day)) or {}
    data = {field: entry.get(field) or 0 for field in MACRO_FIELDS}
    data['date'] = _date_str(day)
    data['hasData'] = bool(entry)
    return data


def target_percentages(day_data, targets):
    """Percent of each target reached, capped at 100."""
    return {
        field: percentage(day_data.get(field, 0), targets.get(field, 0), cap=100)
        for field in MACRO_FIELDS
    }


def macro_targets(diet_plan):
    return {
        'calories': diet_plan.get('targetCalories') or 0,
        'protein': diet_plan.get('targetProtein') or 0,
        'carbs': diet_plan.get('targetCarbs') or 0,
        'fats': diet_plan.get('targetFats') or 0,
    }


def macro_view(macro_history, day, targets, period='week'):
    """
    Per-day macros for the week (Monday start) or month containing `day`.

    Returns:
        dict with 'days' (each with its percentages of target) and 'averages'
    """
    history_by_date = {entry['date']: entry for entry in macro_history}
    dates = month_dates(day) if period == 'month' else week_dates(day)

    days = []
    for current in dates:
        data = macros_for_day(history_by_date, current)
        data['percentages'] = target_percentages(data, targets)
        days.append(data)

    averages_source = days if period == 'week' else [
        macros_for_day(history_by_date, current) for current in week_dates(day)
    ]

    return {
        'period': period,
        'start': days[0]['date'],
        'end': days[-1]['date'],
        'targets': targets,
        'days': days,
        'averages': weekly_averages(averages_source),
    }


def weekly_averages(days):
    """Average macros over the days that have any calories logged."""
    with_data = [day for day in days if (day.get('calories') or 0) > 0]
    if not with_data:
        return {'avgCalories': 0, 'avgProtein': 0, 'avgCarbs': 0, 'avgFats': 0}

    count = len(with_data)
    return {
        'avgCalories': round_half_up(sum(day['calories'] for day in with_data) / count),
        'avgProtein': round_half_up(sum(day['protein'] for day in with_data) / count),
        'avgCarbs': round_half_up(sum(day['carbs'] for day in with_data) / count),
        'avgFats': round_half_up(sum(day['fats'] for day in with_data) / count),
    }


def recent_macros(macro_history, today, count=3):
    """The latest `count` days of macros before today, newest first."""
    today_str = _date_str(today)
    earlier = [entry for entry in macro_history if entry['date'] < today_str]
    earlier.sort(key=lambda entry: entry['date'], reverse=True)
    return earlier[:count]


# ============================================
# STREAKS
# ============================================

def compute_streak(history, today):
    """
    Consecutive completed days ending today.

    Today only counts once it is complete; until then the walk starts at
    yesterday. Any earlier gap or incomplete day ends the streak.
    """
    completed = {entry['date']: bool(entry.get('completed')) for entry in history}

    day = today
    if not completed.get(_date_str(day)):
        day -= timedelta(days=1)

    streak = 0
    while completed.get(_date_str(day)):
        streak += 1
        day -= timedelta(days=1)
    return streak


# ============================================
# EXERCISE PROGRESS
# ============================================

def exercise_names(log):
    return sorted({entry['exerciseName'] for entry in log})


def exercise_history(log, exercise_name, time_range, today):
    """Log entries of one exercise inside a time range, oldest first."""
    if time_range not in VALID_TIME_RANGES:
        raise ValueError(f"Unknown time range: {time_range}")

    entries = [entry for entry in log if entry['exerciseName'] == exercise_name]
    days = VALID_TIME_RANGES[time_range]
    if days is not None:
        cutoff = _date_str(today - timedelta(days=days))
        entries = [entry for entry in entries if entry['date'] > cutoff]
    return sorted(entries, key=lambda entry: entry['date'])


def exercise_stats(entries):
    """Totals for a list of log entries of one exercise."""
    if not entries:
        return {'totalReps': 0, 'averageReps': 0, 'maxReps': 0, 'progress': 0}

    reps = [entry['reps'] for entry in entries]
    total = sum(reps)
    return {
        'totalReps': total,
        'averageReps': round_half_up(total / len(reps)),
        'maxReps': max(reps),
        'progress': reps[-1] - reps[0],
    }
