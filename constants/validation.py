"""
Validation Constants

Contains whitelist values for validating user input and the limits applied
to imported or posted data.
"""

import re

# Calendar dates travel as YYYY-MM-DD strings
DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

# Progress domains a plan belongs to
WORKOUT = 'workout'
DIET = 'diet'
VALID_DOMAINS = {WORKOUT, DIET}

# Valid values for user_settings.storage_preference
VALID_STORAGE_PREFERENCES = {'database', 'local'}

# Time ranges accepted by the exercise history view
VALID_TIME_RANGES = {'7days': 7, '30days': 30, 'all': None}

# The four tracked macros, in display order
MACRO_FIELDS = ('calories', 'protein', 'carbs', 'fats')

# Maximum field lengths for imported plans
MAX_LENGTHS = {
    'plan_name': 200,
    'description': 2000,
    'day_name': 200,
    'exercise_name': 200,
    'sets': 100,
    'meal_name': 200,
    'meal_time': 50,
    'item_name': 200,
}

# Upper bound for any single numeric value in an imported plan
MAX_NUMERIC_VALUE = 100000
