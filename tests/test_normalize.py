import json

import pytest

from constants.catalog import (
    DEFAULT_DIET_PLAN_ID, DIET_PLANS, WORKOUT_PLANS,
    IMPORTED_DIET_PLAN_ID, IMPORTED_WORKOUT_PLAN_ID,
)
from services.normalize import (
    CURRENT_MEAL, LEGACY_MEAL, PlanImportError,
    classify_meal, normalize_meal, normalize_diet_plan, normalize_workout_plan,
    parse_import_document, export_plans, export_plans_to_json,
    fresh_workout_day, fresh_diet_meals,
    is_workout_complete, is_diet_complete, sum_completed_macros,
)


def test_legacy_diet_plan_normalizes_to_current_shape():
    plan = {'meals': [{'meal': 'Breakfast', 'time': '8:00 AM', 'foodItems': ['Eggs']}]}

    normalized = normalize_diet_plan(plan)

    assert normalized['meals'] == [{
        'name': 'Breakfast',
        'time': '8:00 AM',
        'items': [{
            'name': 'Eggs', 'completed': False,
            'calories': 0, 'protein': 0, 'carbs': 0, 'fats': 0,
        }],
    }]


def test_classify_meal_shapes():
    assert classify_meal({'meal': 'Lunch', 'foodItems': []}) == LEGACY_MEAL
    assert classify_meal({'foodItems': ['Rice']}) == LEGACY_MEAL
    assert classify_meal({'name': 'Lunch', 'items': []}) == CURRENT_MEAL
    # items wins when both are present
    assert classify_meal({'meal': 'Lunch', 'items': []}) == CURRENT_MEAL


def test_legacy_food_item_objects_keep_macros():
    meal = normalize_meal({'meal': 'Dinner', 'foodItems': [{'name': 'Rice', 'calories': '130'}, {}]})

    assert meal['items'][0]['name'] == 'Rice'
    assert meal['items'][0]['calories'] == 130
    assert meal['items'][1]['name'] == 'Unknown item'


def test_meal_defaults_and_optional_aggregates():
    meal = normalize_meal({'items': [{'name': 'Oats'}], 'calories': 370})

    assert meal['name'] == ''
    assert meal['time'] == ''
    assert meal['calories'] == 370
    assert 'protein' not in meal


def test_workout_plan_coerces_fields():
    plan = normalize_workout_plan({
        'name': '  Split  ',
        'days': [{'name': 'Push', 'exercises': [
            {'name': 'Bench', 'sets': '4x8', 'reps': '12.6', 'completed': 'true'},
            {'name': 'Dips', 'reps': -4},
            'Plank',
        ]}],
    })

    exercises = plan['days'][0]['exercises']
    assert plan['name'] == 'Split'
    assert exercises[0] == {'name': 'Bench', 'sets': '4x8', 'reps': 13, 'completed': True}
    assert exercises[1]['reps'] == 0
    assert exercises[2]['name'] == 'Plank'


def test_missing_arrays_are_defaulted():
    assert normalize_workout_plan({'name': 'Empty'})['days'] == []
    assert normalize_diet_plan({'name': 'Empty', 'meals': 'nope'})['meals'] == []


def test_parse_wrapped_document_takes_first_plan_of_each_kind():
    data = {
        'workoutPlans': [{'id': 'a', 'name': 'First', 'days': []}, {'id': 'b', 'name': 'Second', 'days': []}],
        'dietPlans': [{'id': 'c', 'name': 'Diet', 'meals': []}],
    }

    workout, diet = parse_import_document(data)

    assert workout['name'] == 'First'
    assert workout['id'] == IMPORTED_WORKOUT_PLAN_ID
    assert diet['id'] == IMPORTED_DIET_PLAN_ID


def test_parse_bare_object_and_bare_array():
    workout, diet = parse_import_document({'name': 'Solo', 'days': []})
    assert workout['name'] == 'Solo'
    assert diet is None

    workout, diet = parse_import_document([{'name': 'Meals', 'meals': []}, {'name': 'Lifts', 'days': []}])
    assert diet['name'] == 'Meals'
    assert workout['name'] == 'Lifts'


def test_parse_json_text():
    workout, diet = parse_import_document(json.dumps({'dietPlans': [{'name': 'D', 'meals': []}]}))
    assert workout is None
    assert diet['name'] == 'D'


@pytest.mark.parametrize('data', ['{not json', {'hello': 'world'}, [], 42, {'workoutPlans': 'x'}])
def test_parse_rejects_documents_without_plans(data):
    with pytest.raises(PlanImportError):
        parse_import_document(data)


def test_export_then_import_only_changes_id():
    workout_plan = WORKOUT_PLANS[0]
    diet_plan = DIET_PLANS[0]

    document = export_plans_to_json([workout_plan], [diet_plan])
    imported_workout, imported_diet = parse_import_document(document)

    expected_workout = normalize_workout_plan(workout_plan)
    expected_workout['id'] = IMPORTED_WORKOUT_PLAN_ID
    expected_diet = normalize_diet_plan(diet_plan)
    expected_diet['id'] = IMPORTED_DIET_PLAN_ID

    assert imported_workout == expected_workout
    assert imported_diet == expected_diet


def test_export_document_fields():
    document = export_plans([], [DIET_PLANS[0]])

    assert document['version'] == '1.0'
    assert document['workoutPlans'] == []
    assert document['dietPlans'][0]['id'] == DEFAULT_DIET_PLAN_ID
    assert 'exportDate' in document


def test_fresh_days_do_not_share_state_with_the_plan():
    template = {'name': 'Day', 'exercises': [{'name': 'Squat', 'sets': '5x5', 'reps': 5, 'completed': True}]}

    day = fresh_workout_day(template)
    day['exercises'][0]['name'] = 'Changed'

    assert template['exercises'][0]['name'] == 'Squat'
    assert day['exercises'][0]['completed'] is False
    assert day['exercises'][0]['reps'] == 0

    meals = fresh_diet_meals(DIET_PLANS[0]['meals'])
    meals[0]['items'][0]['completed'] = True
    assert DIET_PLANS[0]['meals'][0]['items'][0]['completed'] is False


def test_empty_days_are_not_complete():
    assert is_workout_complete({'exercises': []}) is False
    assert is_diet_complete([]) is False
    assert is_diet_complete([{'items': []}]) is False


def test_completion_requires_every_child():
    assert is_workout_complete({'exercises': [{'completed': True}, {'completed': True}]})
    assert not is_workout_complete({'exercises': [{'completed': True}, {'completed': False}]})
    assert is_diet_complete([{'items': [{'completed': True}]}, {'items': [{'completed': True}]}])
    assert not is_diet_complete([{'items': [{'completed': True}]}, {'items': [{'completed': False}]}])


def test_sum_completed_macros_rounds_eaten_items_only():
    meals = [{'items': [
        {'completed': True, 'calories': 100.4, 'protein': 1.5, 'carbs': 0, 'fats': 0.2},
        {'completed': True, 'calories': 50.3, 'protein': 1.2, 'carbs': 10, 'fats': 0.2},
        {'completed': False, 'calories': 900, 'protein': 90, 'carbs': 90, 'fats': 90},
    ]}]

    assert sum_completed_macros(meals) == {'calories': 151, 'protein': 3, 'carbs': 10, 'fats': 0}
