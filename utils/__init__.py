# Utility modules for the fitness tracker
from .sanitizer import (
    sanitize_text, sanitize_name, safe_float, safe_int, safe_bool
)
from .context import (
    AppState, get_app_state, get_user_id, today, format_date, parse_date
)
