"""
Plan Catalog

The built-in workout and diet plans used when a user has no custom plan.
Entries are treated as read-only; callers clone before mutating.
"""

DEFAULT_WORKOUT_PLAN_ID = 'default-workout'
DEFAULT_DIET_PLAN_ID = 'fitness-diet'

# Ids that older clients stored for the default diet plan
LEGACY_DEFAULT_IDS = {'default'}

IMPORTED_WORKOUT_PLAN_ID = 'imported-workout-plan'
IMPORTED_DIET_PLAN_ID = 'imported-diet-plan'


def _exercise(name, sets):
    return {'name': name, 'sets': sets, 'reps': 0, 'completed': False}


def _item(name, calories, protein, carbs, fats):
    return {
        'name': name,
        'completed': False,
        'calories': calories,
        'protein': protein,
        'carbs': carbs,
        'fats': fats,
    }


WORKOUT_PLANS = [
    {
        'id': DEFAULT_WORKOUT_PLAN_ID,
        'name': 'Workout Plan (6 Days a Week)',
        'description': 'Muscle growth and fat loss: 6-day split, core for abs, progressive overload',
        'days': [
            {
                'name': 'Day 1: Chest & Triceps',
                'exercises': [
                    _exercise('Bench Press', '4x8-10'),
                    _exercise('Incline Dumbbell Press', '4x8-10'),
                    _exercise('Cable Flys', '3x12'),
                    _exercise('Dips', '3x10'),
                    _exercise('Skull Crushers', '4x10'),
                    _exercise('Rope Triceps Pushdown', '3x12'),
                ],
            },
            {
                'name': 'Day 2: Back & Biceps',
                'exercises': [
                    _exercise('Deadlifts', '4x6-8'),
                    _exercise('Pull-Ups', '4x10'),
                    _exercise('Bent-over Rows', '4x8-10'),
                    _exercise('Lat Pulldown', '3x12'),
                    _exercise('Barbell Bicep Curls', '4x10'),
                    _exercise('Hammer Curls', '3x12'),
                ],
            },
            {
                'name': 'Day 3: Legs & Abs',
                'exercises': [
                    _exercise('Squats', '4x8-10'),
                    _exercise('Romanian Deadlifts', '3x10'),
                    _exercise('Leg Press', '4x12'),
                    _exercise('Leg Curls', '3x12'),
                    _exercise('Hanging Leg Raises', '4x12'),
                    _exercise('Cable Crunches', '3x15'),
                ],
            },
            {
                'name': 'Day 4: Shoulders & Traps',
                'exercises': [
                    _exercise('Overhead Press', '4x8-10'),
                    _exercise('Lateral Raises', '4x12'),
                    _exercise('Rear Delt Flys', '3x12'),
                    _exercise('Shrugs', '4x15'),
                ],
            },
            {
                'name': 'Day 5: Arms & Abs',
                'exercises': [
                    _exercise('Barbell Biceps Curl', '4x10'),
                    _exercise('Close-Grip Bench Press', '4x10'),
                    _exercise('Concentration Curls', '3x12'),
                    _exercise('Rope Pushdowns', '3x12'),
                    _exercise('Hanging Leg Raises', '4x12'),
                    _exercise('Planks', '3x1 min'),
                ],
            },
            {
                'name': 'Day 6: Cardio & Core',
                'exercises': [
                    _exercise('HIIT', '15-20 min'),
                    _exercise('Cable Twists', '3x12'),
                    _exercise('Russian Twists', '3x15'),
                    _exercise('Decline Sit-Ups', '4x12'),
                ],
            },
            {
                'name': 'Day 7: Rest',
                'exercises': [
                    _exercise('Active Recovery (Optional)', 'Light walking/stretching'),
                ],
            },
        ],
    },
]


DIET_PLANS = [
    {
        'id': DEFAULT_DIET_PLAN_ID,
        'name': 'Fitness Meal Plan',
        'description': 'High protein meal plan with caloric breakdown',
        'targetCalories': 2200,
        'targetProtein': 170,
        'targetCarbs': 210,
        'targetFats': 55,
        'meals': [
            {
                'name': 'Pre-Workout',
                'time': '5:30 AM',
                'items': [
                    _item('Banana', 120, 1, 30, 0),
                    _item('Creatine with Water', 0, 0, 0, 0),
                ],
                'calories': 120, 'protein': 1, 'carbs': 30, 'fats': 0,
            },
            {
                'name': 'Post-Workout',
                'time': '9:30 AM',
                'items': [
                    _item('Soya Chunks (100g)', 300, 52, 26, 0.5),
                    _item('Milk (200ml)', 120, 6, 10, 6),
                    _item('Egg Whites (4)', 68, 14, 0, 0),
                    _item('Whole Egg (1)', 72, 6, 0, 5),
                ],
                'calories': 500, 'protein': 60, 'carbs': 30, 'fats': 12,
            },
            {
                'name': 'Breakfast',
                'time': '10:30 AM',
                'items': [
                    _item('Oats (100g)', 370, 13, 60, 7),
                    _item('Peanut Butter (30g)', 180, 8, 6, 15),
                    _item('Milk (200ml)', 120, 6, 10, 6),
                    _item('Curd/Probiotic (100g)', 80, 5, 6, 4),
                ],
                'calories': 600, 'protein': 35, 'carbs': 70, 'fats': 20,
            },
            {
                'name': 'Lunch',
                'time': '2:00 PM',
                'items': [
                    _item('Paneer (100g)', 250, 18, 3, 18),
                    _item('Cooked Rice (100g)', 130, 3, 28, 0.3),
                    _item('Bowl of Vegetables', 75, 3, 15, 0.5),
                    _item('Whole Wheat Roti (40g)', 95, 3, 19, 0.5),
                ],
                'calories': 550, 'protein': 50, 'carbs': 65, 'fats': 22,
            },
            {
                'name': 'Evening Snack',
                'time': '6:00 PM',
                'items': [
                    _item('Egg Whites (4)', 68, 14, 0, 0),
                    _item('Whole Egg (1)', 72, 6, 0, 5),
                    _item('Whole Wheat Roti (40g)', 95, 3, 19, 0.5),
                    _item('Peanut Butter (1 tsp)', 60, 2, 2, 5),
                ],
                'calories': 350, 'protein': 35, 'carbs': 25, 'fats': 12,
            },
            {
                'name': 'Dinner',
                'time': '9:00 PM',
                'items': [
                    _item('Chicken Breast (150g)', 250, 45, 0, 5),
                    _item('Bowl of Vegetables', 75, 3, 15, 0.5),
                    _item('Rice (50g)', 65, 1.5, 14, 0.1),
                    _item('Whole Wheat Roti (40g)', 95, 3, 19, 0.5),
                ],
                'calories': 500, 'protein': 55, 'carbs': 40, 'fats': 10,
            },
            {
                'name': 'Before Bed',
                'time': '11:30 PM',
                'items': [
                    _item('Milk (200ml)', 120, 6, 10, 5),
                ],
                'calories': 120, 'protein': 6, 'carbs': 10, 'fats': 5,
            },
        ],
    },
]


# Placeholders used when the current plan marker names no known plan
EMPTY_WORKOUT_PLAN = {
    'id': '',
    'name': 'No Workout Plan',
    'description': 'No workout plan available',
    'days': [],
}

EMPTY_DIET_PLAN = {
    'id': '',
    'name': 'No Diet Plan',
    'description': 'No diet plan available',
    'targetCalories': 0,
    'targetProtein': 0,
    'targetCarbs': 0,
    'targetFats': 0,
    'meals': [],
}
