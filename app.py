import atexit
import logging

from flask import Blueprint, Flask, current_app, jsonify, request, Response
from flask_migrate import Migrate

from config import get_config
from constants.catalog import WORKOUT_PLANS, DIET_PLANS
from constants.validation import WORKOUT, DIET, VALID_DOMAINS, VALID_TIME_RANGES
from models import db
from services import database, stats
from services.autosave import Debouncer
from services.cache import HistoryCache, WORKOUT_HISTORY, DIET_HISTORY, MACRO_HISTORY, EXERCISE_LOG
from services.database import StoreError
from services.normalize import PlanImportError, parse_import_document, export_plans_to_json
from services.plan_manager import PlanManager
from services.progress import WorkoutProgress, DietProgress
from services.setup import (
    SetupScriptError, check_database_status, run_setup_script, create_tables,
)
from utils.context import AppState, get_app_state, get_user_id, today, format_date
from utils.sanitizer import safe_bool

logger = logging.getLogger(__name__)

migrate = Migrate()

bp = Blueprint('tracker', __name__)

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}


def create_app(env=None):
    app = Flask(__name__)
    app.config.from_object(get_config(env))

    logging.basicConfig(
        level=getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    db.init_app(app)
    migrate.init_app(app, db)

    debouncer = Debouncer(app)
    max_users = app.config['MAX_TRACKED_USERS']
    cache = HistoryCache(limit=app.config['HISTORY_CACHE_LIMIT'], max_users=max_users)
    app.extensions['tracker'] = AppState(debouncer=debouncer, cache=cache, max_users=max_users)
    atexit.register(debouncer.flush)

    app.register_blueprint(bp)
    register_error_handlers(app)

    @app.after_request
    def add_no_cache_headers(response):
        if response.mimetype == 'application/json':
            for header, value in NO_CACHE_HEADERS.items():
                response.headers[header] = value
        return response

    return app


def register_error_handlers(app):
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'success': False, 'message': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'success': False, 'message': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error("Unhandled error: %s", e)
        return jsonify({'success': False, 'message': 'Internal server error'}), 500


# ============================================
# REQUEST HELPERS
# ============================================

def get_body():
    """JSON body of the request, or an empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def error_response(message, status=400, **extra):
    payload = {'success': False, 'message': message}
    payload.update(extra)
    return jsonify(payload), status


def store_error_response(error):
    status = 503 if error.code in (database.TABLE_MISSING, database.CONNECTION) else 500
    return error_response(error.message, status, code=error.code)


def get_plan_manager():
    state = get_app_state()
    user_id = get_user_id()

    def build(uid):
        return PlanManager.from_config(uid, current_app.config, state.cache, state.debouncer)

    return state.plan_manager_for(user_id, build).ensure_loaded()


def get_progress(domain):
    state = get_app_state()
    manager = get_plan_manager()
    progress_class = WorkoutProgress if domain == WORKOUT else DietProgress
    return progress_class(
        manager.user_id,
        manager.get_plan(domain),
        today(),
        cache=state.cache,
        debouncer=state.debouncer,
    )


def database_ready():
    """Schema check, run once per application start."""
    state = get_app_state()
    if not state.database_checked:
        try:
            state.record_database_status(check_database_status())
        except Exception as e:
            logger.error("Database status check failed: %s", e)
            state.record_database_status({'success': False, 'message': str(e)})
    return state.database_ready


def index_arg(data, key):
    """
    A list position from the request body.

    Raises:
        ValueError: when the value is present but not a whole number
    """
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValueError(f"{key} must be a whole number")


# ============================================
# ROUTES - DASHBOARD
# ============================================

@bp.route('/')
def dashboard():
    ready = database_ready()
    manager = get_plan_manager()
    try:
        workout = get_progress(WORKOUT)
        diet = get_progress(DIET)
        workout_view = workout.view()
        diet_view = diet.view()
        macro_history = diet.macro_history()
    except StoreError as e:
        return store_error_response(e)

    return jsonify({
        'success': True,
        'databaseReady': ready,
        'today': format_date(workout.today),
        'workout': {
            'planName': manager.workout_plan['name'],
            'dayName': workout_view['day']['workout']['name'],
            'completion': stats.workout_completion(workout_view['day']['workout']),
            'streak': workout_view['streak'],
        },
        'diet': {
            'planName': manager.diet_plan['name'],
            'completion': stats.diet_completion(diet_view['day']['meals']),
            'calories': stats.calorie_stats(diet_view['day']['meals']),
            'streak': diet_view['streak'],
        },
        'recentMacros': stats.recent_macros(macro_history, workout.today),
    })


# ============================================
# ROUTES - WORKOUT
# ============================================

@bp.route('/workout')
def workout_view():
    try:
        progress = get_progress(WORKOUT)
        result = progress.view(request.args.get('date'))
    except ValueError as e:
        return error_response(str(e))
    except StoreError as e:
        return store_error_response(e)

    result['success'] = True
    result['plan'] = {'id': progress.plan['id'], 'name': progress.plan['name']}
    result['completion'] = stats.workout_completion(result['day']['workout'])
    return jsonify(result)


@bp.route('/workout/toggle', methods=['POST'])
def workout_toggle():
    data = get_body()
    try:
        result = get_progress(WORKOUT).toggle_item(data.get('date'), index_arg(data, 'exerciseIndex'))
    except (ValueError, IndexError) as e:
        return error_response(str(e))
    except StoreError as e:
        return store_error_response(e)
    result['success'] = True
    return jsonify(result)


@bp.route('/workout/reps', methods=['POST'])
def workout_reps():
    data = get_body()
    if 'reps' not in data:
        return error_response('No reps provided')
    try:
        result = get_progress(WORKOUT).set_reps(
            data.get('date'), index_arg(data, 'exerciseIndex'), data.get('reps')
        )
    except (ValueError, IndexError) as e:
        return error_response(str(e))
    except StoreError as e:
        return store_error_response(e)
    result['success'] = True
    return jsonify(result)


@bp.route('/workout/save', methods=['POST'])
def workout_save():
    try:
        result = get_progress(WORKOUT).save(get_body().get('date'))
    except ValueError as e:
        return error_response(str(e))
    return jsonify(result), (200 if result['success'] else 500)


@bp.route('/workout/reset', methods=['POST'])
def workout_reset():
    try:
        result = get_progress(WORKOUT).reset_day(get_body().get('date'))
    except ValueError as e:
        return error_response(str(e))
    return jsonify(result), (200 if result['success'] else 500)


@bp.route('/workout/history')
def workout_history():
    time_range = request.args.get('range', '30days')
    if time_range not in VALID_TIME_RANGES:
        return error_response(f"Unknown time range: {time_range}")

    try:
        progress = get_progress(WORKOUT)
        log = progress.exercise_log()
    except StoreError as e:
        return store_error_response(e)

    names = stats.exercise_names(log)
    exercise = request.args.get('exercise') or (names[0] if names else None)
    entries = stats.exercise_history(log, exercise, time_range, progress.today) if exercise else []

    return jsonify({
        'success': True,
        'exercises': names,
        'exercise': exercise,
        'range': time_range,
        'entries': entries,
        'stats': stats.exercise_stats(entries),
    })


# ============================================
# ROUTES - DIET
# ============================================

@bp.route('/diet')
def diet_view():
    try:
        progress = get_progress(DIET)
        result = progress.view(request.args.get('date'))
    except ValueError as e:
        return error_response(str(e))
    except StoreError as e:
        return store_error_response(e)

    meals = result['day']['meals']
    result['success'] = True
    result['plan'] = {'id': progress.plan['id'], 'name': progress.plan['name']}
    result['targets'] = stats.macro_targets(progress.plan)
    result['completion'] = stats.diet_completion(meals)
    result['calories'] = stats.calorie_stats(meals)
    return jsonify(result)


@bp.route('/diet/toggle', methods=['POST'])
def diet_toggle():
    data = get_body()
    try:
        result = get_progress(DIET).toggle_item(
            data.get('date'), index_arg(data, 'mealIndex'), index_arg(data, 'itemIndex')
        )
    except (ValueError, IndexError) as e:
        return error_response(str(e))
    except StoreError as e:
        return store_error_response(e)
    result['success'] = True
    return jsonify(result)


@bp.route('/diet/save', methods=['POST'])
def diet_save():
    try:
        result = get_progress(DIET).save(get_body().get('date'))
    except ValueError as e:
        return error_response(str(e))
    return jsonify(result), (200 if result['success'] else 500)


@bp.route('/diet/reset', methods=['POST'])
def diet_reset():
    try:
        result = get_progress(DIET).reset_day(get_body().get('date'))
    except ValueError as e:
        return error_response(str(e))
    return jsonify(result), (200 if result['success'] else 500)


# ============================================
# ROUTES - MACROS & PROGRESS
# ============================================

@bp.route('/macros')
def macros_view():
    period = request.args.get('period', 'week')
    if period not in ('week', 'month'):
        return error_response(f"Unknown period: {period}")

    try:
        progress = get_progress(DIET)
        day, notice = progress.resolve_date(request.args.get('date'))
        history = progress.macro_history()
    except ValueError as e:
        return error_response(str(e))
    except StoreError as e:
        return store_error_response(e)

    view = stats.macro_view(history, day, stats.macro_targets(progress.plan), period)
    view['success'] = True
    view['notice'] = notice
    return jsonify(view)


@bp.route('/progress')
def progress_view():
    try:
        workout = get_progress(WORKOUT)
        diet = get_progress(DIET)
        workout_history = workout.history()
        diet_history = diet.history()
    except StoreError as e:
        return store_error_response(e)

    return jsonify({
        'success': True,
        'workout': {
            'streak': stats.compute_streak(workout_history, workout.today),
            'days': [
                {'date': entry['date'], 'name': entry['workout'].get('name', ''),
                 'completed': entry['completed'],
                 'completion': stats.workout_completion(entry['workout'])}
                for entry in reversed(workout_history)
            ],
        },
        'diet': {
            'streak': stats.compute_streak(diet_history, diet.today),
            'days': [
                {'date': entry['date'], 'completed': entry['completed'],
                 'completion': stats.diet_completion(entry['meals'])}
                for entry in reversed(diet_history)
            ],
        },
    })


# ============================================
# ROUTES - PLANS
# ============================================

@bp.route('/plans')
def plans_view():
    manager = get_plan_manager()
    return jsonify({
        'success': True,
        'workoutPlan': manager.get_plan(WORKOUT),
        'dietPlan': manager.get_plan(DIET),
        'catalog': {
            'workoutPlans': [{'id': p['id'], 'name': p['name']} for p in WORKOUT_PLANS],
            'dietPlans': [{'id': p['id'], 'name': p['name']} for p in DIET_PLANS],
        },
        'status': manager.status(),
    })


@bp.route('/plans/import', methods=['POST'])
def plans_import():
    data = request.get_json(silent=True)
    if data is None:
        return error_response('Please provide the plan as JSON')

    # A bare array posted as a diet file holds diet plans
    if request.args.get('type') == DIET and isinstance(data, list):
        data = {'dietPlans': data}

    try:
        workout_plan, diet_plan = parse_import_document(data)
    except PlanImportError as e:
        return error_response(str(e))

    result = get_plan_manager().import_plan(workout_plan=workout_plan, diet_plan=diet_plan)
    return jsonify(result), (200 if result['success'] else 500)


@bp.route('/plans/export')
def plans_export():
    manager = get_plan_manager()
    body = export_plans_to_json([manager.get_plan(WORKOUT)], [manager.get_plan(DIET)])
    response = Response(body, mimetype='application/json')
    response.headers['Content-Disposition'] = 'attachment; filename=fitness-plans.json'
    return response


@bp.route('/plans/delete', methods=['POST'])
def plans_delete():
    data = get_body()
    domain = data.get('domain')
    if domain not in VALID_DOMAINS:
        return error_response("Domain must be 'workout' or 'diet'")

    manager = get_plan_manager()
    reset = safe_bool(data.get('resetToDefault', True))
    if not manager.delete_all(domain, reset_to_default=reset):
        return error_response(f"Could not delete {domain} plans", 500, status=manager.status())

    return jsonify({
        'success': True,
        'message': f"All {domain} plans deleted",
        'plan': manager.get_plan(domain),
        'status': manager.status(),
    })


@bp.route('/plans/check', methods=['POST'])
def plans_check():
    data = get_body()
    view_ids = {WORKOUT: data.get('workoutPlanId'), DIET: data.get('dietPlanId')}
    manager = get_plan_manager()
    status = manager.check_consistency(view_ids)
    return jsonify({
        'success': status['state'] != 'error',
        'status': status,
        'workoutPlan': manager.get_plan(WORKOUT),
        'dietPlan': manager.get_plan(DIET),
    })


@bp.route('/plans/emergency-reset', methods=['POST'])
def plans_emergency_reset():
    manager = get_plan_manager()
    stored = manager.emergency_reset()
    return jsonify({
        'success': stored,
        'message': 'All plans and progress were reset' if stored
                   else 'Plans were reset, but the database could not be cleared',
        'status': manager.status(),
    }), (200 if stored else 500)


# ============================================
# ROUTES - SETTINGS
# ============================================

@bp.route('/settings')
def settings_view():
    user_id = get_user_id()
    try:
        settings = database.get_user_settings(user_id)
    except StoreError as e:
        return store_error_response(e)
    return jsonify({
        'success': True,
        'userId': user_id,
        'storagePreference': settings['storage_preference'],
        'currentWorkoutPlanId': settings['current_workout_plan_id'],
        'currentDietPlanId': settings['current_diet_plan_id'],
        'databaseReady': get_app_state().database_ready,
    })


@bp.route('/settings', methods=['POST'])
def settings_update():
    preference = get_body().get('storagePreference')
    if not preference:
        return error_response('No storage preference provided')
    try:
        settings = database.set_storage_preference(get_user_id(), preference)
    except StoreError as e:
        if e.code == database.UNKNOWN:
            return error_response(e.message)
        return store_error_response(e)
    return jsonify({'success': True, 'storagePreference': settings['storage_preference']})


# ============================================
# ROUTES - DATABASE ADMIN
# ============================================

@bp.route('/clear-progress', methods=['POST'])
def clear_progress():
    state = get_app_state()
    user_id = get_user_id()

    for key in state.debouncer.pending_keys():
        if key[0] == user_id:
            state.debouncer.cancel(key)

    try:
        result = database.clear_all_progress(user_id)
    except Exception as e:
        logger.error("Error in clear progress: %s", e)
        return error_response(f"Failed to clear progress: {e}", 500)

    state.cache.invalidate(user_id, WORKOUT_HISTORY, DIET_HISTORY, MACRO_HISTORY, EXERCISE_LOG)
    return jsonify(result), (200 if result['success'] else 500)


@bp.route('/database-status', methods=['GET', 'POST'])
def database_status():
    try:
        status = check_database_status()
    except Exception as e:
        logger.error("Error checking database status: %s", e)
        return error_response(f"Error checking database: {e}", 500)

    if request.method == 'POST':
        get_app_state().record_database_status(status)
    return jsonify(status)


@bp.route('/database-status-store', methods=['GET'])
def database_status_store_get():
    try:
        status = database.get_database_status(get_user_id())
    except StoreError as e:
        return error_response(f"Error fetching database status: {e.message}", 500)
    return jsonify({'success': True, 'status': status})


@bp.route('/database-status-store', methods=['POST'])
def database_status_store_post():
    status = get_body().get('status')
    if not status or not isinstance(status, dict):
        return error_response('No database status provided')

    try:
        database.store_database_status(get_user_id(), status)
    except StoreError as e:
        return error_response(f"Error storing database status: {e.message}", 500)
    return jsonify({'success': True, 'message': 'Database status stored successfully'})


@bp.route('/database-setup', methods=['POST'])
def database_setup():
    data = get_body()
    script = data.get('sqlScript')
    if not script:
        return error_response('No SQL script provided')

    table_names = data.get('tableNames')
    if table_names is not None and not isinstance(table_names, list):
        return error_response('tableNames must be a list')

    try:
        result = run_setup_script(script, table_names)
    except SetupScriptError as e:
        return error_response(str(e))
    except Exception as e:
        logger.error("Error executing SQL script: %s", e)
        return error_response(f"Error executing SQL script: {e}", 500)

    if result['success']:
        get_app_state().record_database_status(result['databaseStatus'])
    return jsonify(result)


# ============================================
# INITIALIZE DATABASE
# ============================================

def init_db(app):
    with app.app_context():
        create_tables()


app = create_app()


if __name__ == '__main__':
    init_db(app)
    # host='0.0.0.0' allows access from other devices on the network
    app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=5000, use_reloader=False)
